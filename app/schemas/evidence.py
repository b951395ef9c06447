"""
Evidence models shared by the search adapters, the orchestrator and the synthesis stage.

Raw provider records are classified into explicit shapes before normalization
so the normalizer's fallback chains are exhaustive:

- ``ParallelSearchRecord``: id/title/url/snippet style search results
- ``GroundingChunkRecord``: Google Search grounding chunks from the GenAI SDK
- ``UnknownRecord``: anything else, including non-mapping values
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Iterator, List, Literal, Optional, Set, Tuple, Union
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class EvidenceKind(str, Enum):
    """Provenance class of one evidence item."""
    SOURCE = "source"
    QUESTION = "question"
    PERSON = "person"
    CODING = "coding"


class Partition(str, Enum):
    """Evidence Bundle partitions, one per source adapter."""
    COMPANY = "company"
    QUESTIONS = "questions"
    INTERVIEWER = "interviewer"


PARTITION_ORDER: Tuple[Partition, ...] = (Partition.COMPANY, Partition.QUESTIONS, Partition.INTERVIEWER)


class Evidence(BaseModel):
    """One normalized, citable fact unit derived from an external source result."""
    id: str = Field(..., min_length=1, description="Unique within its partition, stable for one aggregation run.")
    kind: EvidenceKind
    title: str = Field(..., min_length=1)
    url: Optional[str] = None
    snippet: Optional[str] = None
    raw: Any = Field(default=None, description="Untouched provider record, kept for audit only.")

    def wire_tuple(self) -> Tuple[str, str, str, Optional[str], Optional[str]]:
        return (self.id, self.kind.value, self.title, self.url, self.snippet)


class EvidenceBundle(BaseModel):
    """Per-request collection of evidence, keyed by partition in a fixed order."""
    company: List[Evidence] = Field(default_factory=list)
    questions: List[Evidence] = Field(default_factory=list)
    interviewer: List[Evidence] = Field(default_factory=list)

    def partition(self, name: Union[Partition, str]) -> List[Evidence]:
        return getattr(self, Partition(name).value)

    def ids(self, name: Union[Partition, str]) -> Set[str]:
        return {item.id for item in self.partition(name)}

    def items(self) -> Iterator[Tuple[Partition, List[Evidence]]]:
        for name in PARTITION_ORDER:
            yield name, self.partition(name)

    def counts(self) -> Dict[str, int]:
        return {name.value: len(evidence) for name, evidence in self.items()}

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready representation with partitions in fixed order."""
        return {name.value: [e.model_dump(mode="json") for e in evidence] for name, evidence in self.items()}

    @classmethod
    def from_wire(cls, data: Mapping) -> "EvidenceBundle":
        return cls.model_validate({name.value: data.get(name.value) or [] for name in PARTITION_ORDER})


# --- Raw provider shapes ---

class ParallelSearchRecord(BaseModel):
    """Search API result with optional id/title/url/snippet-like fields."""
    model_config = ConfigDict(extra="allow")

    shape: Literal["search"] = "search"
    id: Optional[Union[str, int]] = None
    title: Optional[str] = None
    source: Optional[str] = None
    url: Optional[str] = None
    link: Optional[str] = None
    snippet: Optional[str] = None
    summary: Optional[str] = None
    text: Optional[str] = None
    excerpts: Optional[List[str]] = None


class GroundingChunkRecord(BaseModel):
    """Web chunk from a grounded GenAI response plus the answer segments it supports."""
    model_config = ConfigDict(extra="allow")

    shape: Literal["grounding"] = "grounding"
    title: Optional[str] = None
    uri: Optional[str] = None
    domain: Optional[str] = None
    segment_texts: List[str] = Field(default_factory=list)
    text: Optional[str] = None


class UnknownRecord(BaseModel):
    """Fallback branch for records that match no known provider shape."""
    shape: Literal["unknown"] = "unknown"
    value: Any = None


RawRecord = Union[ParallelSearchRecord, GroundingChunkRecord, UnknownRecord]

_GROUNDING_KEYS = {"uri", "segment_texts", "domain"}
_SEARCH_KEYS = {"id", "title", "source", "url", "link", "snippet", "summary", "text", "excerpts"}


def classify_record(item: Any) -> RawRecord:
    """Pick the explicit shape for one raw provider record. Never raises."""
    if not isinstance(item, Mapping):
        return UnknownRecord(value=item)

    keys = set(item.keys())
    try:
        if keys & _GROUNDING_KEYS:
            return GroundingChunkRecord.model_validate(dict(item))
        if keys & _SEARCH_KEYS:
            return ParallelSearchRecord.model_validate(dict(item))
    except ValidationError:
        pass
    return UnknownRecord(value=item)
