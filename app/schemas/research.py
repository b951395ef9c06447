from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional

from app.core.config import settings
from app.schemas.evidence import Evidence


# --- Request Models ---

class ResearchRequest(BaseModel):
    """Body of the research endpoints. Every field is optional on the wire."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    company: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("company", "company_name"),
        description="Company name (also accepted as 'company_name')."
    )
    role: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("role", "job_title"),
        description="Role or job title (also accepted as 'job_title')."
    )
    job_link: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("job_link", "jobURL"),
        description="Link to the job posting (also accepted as 'jobURL')."
    )
    interviewer_linkedin_url: Optional[str] = Field(default=None, description="Interviewer's LinkedIn profile URL.")
    timeout_ms: int = Field(default=settings.DEFAULT_TIMEOUT_MS, gt=0, description="Per-source search deadline.")

    @field_validator("company", "role", "job_link", "interviewer_linkedin_url", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("timeout_ms", mode="before")
    @classmethod
    def _default_timeout(cls, value):
        return settings.DEFAULT_TIMEOUT_MS if value is None else value

    def to_query_spec(self) -> "QuerySpec":
        return QuerySpec(
            company=self.company,
            role=self.role,
            job_link=self.job_link,
            interviewer_linkedin_url=self.interviewer_linkedin_url,
            timeout_ms=self.timeout_ms,
        )


class QuerySpec(BaseModel):
    """Per-request search input shared by every source adapter."""
    model_config = ConfigDict(frozen=True)

    company: Optional[str] = None
    role: Optional[str] = None
    job_link: Optional[str] = None
    interviewer_linkedin_url: Optional[str] = None
    timeout_ms: int = Field(default=settings.DEFAULT_TIMEOUT_MS, gt=0)
    max_cost_usd: float = Field(default=settings.MAX_COST_USD, gt=0)
    max_chars_per_result: int = Field(default=settings.MAX_CHARS_PER_RESULT, gt=0)

    def cache_key(self) -> tuple:
        """Normalized identity of the query, used by the evidence cache."""
        def norm(value: Optional[str]) -> str:
            return " ".join(value.lower().split()) if value else ""
        return (
            norm(self.company),
            norm(self.role),
            norm(self.job_link),
            norm(self.interviewer_linkedin_url),
        )


# --- Response Models ---

class SourceSearchResponse(BaseModel):
    """Result of a single source adapter run."""
    objective: str
    search_queries: List[str]
    evidence: List[Evidence] = Field(default_factory=list)
