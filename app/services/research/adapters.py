"""
Source adapters: one per external evidence category.

Each adapter turns a QuerySpec into an objective and a short list of
high-signal query terms, runs the shared search provider under the
request's deadline, and normalizes the results into Evidence. Result
budgets are small, so queries favour precision (known discussion and
question sites) over recall.
"""
import logging
import re
from typing import Dict, List, Optional

from app.core.exceptions import AppError, MissingInputError, UpstreamError
from app.schemas.evidence import EvidenceKind, Partition
from app.schemas.research import QuerySpec, SourceSearchResponse
from app.services.research.normalizer import normalize_results
from app.services.research.search_client import SearchProvider
from app.services.research.timed_fetch import with_deadline

logger = logging.getLogger(__name__)

PRIMARY_SOURCES_HINT = "Prefer primary sources (company site, news articles, employee reviews). Include URLs and short snippets."

_URL_PATTERN = re.compile(r'^https?://\S+$', re.IGNORECASE)


def is_profile_url(url: Optional[str]) -> bool:
    """True for an absolute http(s) URL; the interviewer search needs one."""
    return bool(url and _URL_PATTERN.match(url))


def _join_lines(*lines: Optional[str]) -> str:
    return "\n".join(line for line in lines if line)


def _compact(*queries: Optional[str]) -> List[str]:
    return [q for q in queries if q]


class SourceAdapter:
    """Base adapter. Subclasses define the required fields, objective and queries."""

    name: str = "source"
    kind: EvidenceKind = EvidenceKind.SOURCE
    partition: Optional[Partition] = None
    max_results: int = 10

    def __init__(self, search_client: SearchProvider):
        self._search_client = search_client

    def missing_fields(self, spec: QuerySpec) -> List[str]:
        """Required fields that are absent (or unusable) in the query."""
        return []

    def build_objective(self, spec: QuerySpec) -> str:
        raise NotImplementedError

    def build_queries(self, spec: QuerySpec) -> List[str]:
        raise NotImplementedError

    async def search(self, spec: QuerySpec) -> SourceSearchResponse:
        missing = self.missing_fields(spec)
        if missing:
            raise MissingInputError(missing[0], f"Missing {missing[0]} for {self.name} search.")

        objective = self.build_objective(spec)
        search_queries = self.build_queries(spec)
        logger.info(f"[{self.name}] Searching with {len(search_queries)} queries (deadline {spec.timeout_ms}ms)")

        try:
            raw_results = await with_deadline(
                self._search_client.search(
                    objective,
                    search_queries,
                    max_results=self.max_results,
                    max_chars_per_result=spec.max_chars_per_result,
                    max_cost_usd=spec.max_cost_usd,
                ),
                spec.timeout_ms,
                label=f"{self.name} search",
            )
        except AppError:
            raise
        except Exception as e:
            logger.error(f"[{self.name}] Search provider error: {e}", exc_info=True)
            raise UpstreamError("search", f"{self.name} search failed", details={"error": str(e)}) from e

        evidence = normalize_results(raw_results, self.kind)
        logger.info(f"[{self.name}] Normalized {len(evidence)} evidence item(s)")
        return SourceSearchResponse(objective=objective, search_queries=search_queries, evidence=evidence)


class CompanyAdapter(SourceAdapter):
    name = "company"
    kind = EvidenceKind.SOURCE
    partition = Partition.COMPANY

    def missing_fields(self, spec: QuerySpec) -> List[str]:
        return [] if spec.company else ["company"]

    def build_objective(self, spec: QuerySpec) -> str:
        return _join_lines(
            "Identify the company's culture, values, and recent news to help prepare tailored interview questions.",
            f"Company: {spec.company}",
            spec.role and f"Role: {spec.role}",
            spec.job_link and f"Job posting: {spec.job_link}",
            PRIMARY_SOURCES_HINT,
        )

    def build_queries(self, spec: QuerySpec) -> List[str]:
        company = spec.company
        return _compact(
            company,
            f'"{company}" culture values',
            f'"{company}" recent news',
            spec.job_link,
        )


class QuestionAdapter(SourceAdapter):
    name = "questions"
    kind = EvidenceKind.QUESTION
    partition = Partition.QUESTIONS

    SITE_MODIFIERS = (
        "site:glassdoor.com interview questions",
        "site:reddit.com interview questions",
        "site:indeed.com interview questions",
    )

    def missing_fields(self, spec: QuerySpec) -> List[str]:
        return [field for field in ("company", "role") if not getattr(spec, field)]

    def build_objective(self, spec: QuerySpec) -> str:
        return _join_lines(
            "Find the most commonly asked interview questions for this company and role.",
            f"Company: {spec.company}",
            f"Role: {spec.role}",
            PRIMARY_SOURCES_HINT,
        )

    def build_queries(self, spec: QuerySpec) -> List[str]:
        return [f"{spec.company} {spec.role}", *self.SITE_MODIFIERS]


class InterviewerAdapter(SourceAdapter):
    name = "interviewer"
    kind = EvidenceKind.PERSON
    partition = Partition.INTERVIEWER
    max_results = 1

    def missing_fields(self, spec: QuerySpec) -> List[str]:
        return [] if is_profile_url(spec.interviewer_linkedin_url) else ["interviewer_linkedin_url"]

    def build_objective(self, spec: QuerySpec) -> str:
        return _join_lines(
            "Given the following LinkedIn URL, extract key professional, educational, and extracurricular "
            "information that can be used to create thoughtful, personalized interview questions tailored to "
            "their background, experiences, achievements, and interests.",
            f"LinkedIn URL: {spec.interviewer_linkedin_url}",
            spec.company and f"Company: {spec.company}",
            "Only use public, professional information.",
        )

    def build_queries(self, spec: QuerySpec) -> List[str]:
        return [spec.interviewer_linkedin_url]


class LeetCodeAdapter(SourceAdapter):
    """Coding-problem sources for a company. Not part of the report bundle."""
    name = "leetcode"
    kind = EvidenceKind.CODING

    def missing_fields(self, spec: QuerySpec) -> List[str]:
        return [] if spec.company else ["company"]

    def build_objective(self, spec: QuerySpec) -> str:
        return _join_lines(
            f"Find LeetCode-style interview questions asked by {spec.company}.",
            spec.role and f"Role: {spec.role}",
            "Prefer official LeetCode company pages, discussion threads, and GitHub repositories.",
            "Return 5-10 representative questions with short summaries and URLs. Exclude unrelated results.",
        )

    def build_queries(self, spec: QuerySpec) -> List[str]:
        company = spec.company
        slug = re.sub(r'\s+', '-', company.lower())
        return [
            f"site:leetcode.com/company/{slug}",
            f'site:leetcode.com/discuss "interview questions" {company}',
            f"site:github.com {company} leetcode interview questions",
            f"site:medium.com {company} leetcode interview",
            f"site:reddit.com {company} leetcode interview questions",
        ]


ADAPTER_TYPES = {
    adapter.name: adapter for adapter in (CompanyAdapter, QuestionAdapter, InterviewerAdapter, LeetCodeAdapter)
}

# Adapters whose evidence feeds the report, in partition order
REPORT_ADAPTER_NAMES = ("company", "questions", "interviewer")


def build_adapters(search_client: SearchProvider) -> Dict[str, SourceAdapter]:
    return {name: adapter_type(search_client) for name, adapter_type in ADAPTER_TYPES.items()}
