"""
Evidence normalization.

Turns one provider's raw, loosely-typed result list into ordered Evidence
records with deterministic IDs. This stage never raises: the orchestrator
always receives a list, possibly empty.
"""
import logging
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional

from app.core.config import settings
from app.schemas.evidence import (
    Evidence,
    EvidenceKind,
    GroundingChunkRecord,
    ParallelSearchRecord,
    RawRecord,
    UnknownRecord,
    classify_record,
)

logger = logging.getLogger(__name__)

DEFAULT_TITLES: Dict[EvidenceKind, str] = {
    EvidenceKind.SOURCE: "Source",
    EvidenceKind.QUESTION: "Interview Question Source",
    EvidenceKind.PERSON: "LinkedIn Profile",
    EvidenceKind.CODING: "Coding Question Source",
}


def _first_text(*candidates: Any) -> Optional[str]:
    """First candidate that is a non-blank string."""
    for value in candidates:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def truncate_snippet(text: Optional[str], limit: int = settings.SNIPPET_MAX_CHARS) -> Optional[str]:
    if text is None:
        return None
    return text if len(text) <= limit else text[:limit]


def _source_id(record: RawRecord) -> Optional[str]:
    if isinstance(record, ParallelSearchRecord) and record.id is not None:
        value = str(record.id).strip()
        return value or None
    return None


def _fields(record: RawRecord, kind: EvidenceKind) -> Dict[str, Optional[str]]:
    """Title/url/snippet fallback chains, one branch per known shape."""
    if isinstance(record, ParallelSearchRecord):
        excerpt = record.excerpts[0] if record.excerpts else None
        return {
            "title": _first_text(record.title, record.source) or DEFAULT_TITLES[kind],
            "url": _first_text(record.url, record.link),
            "snippet": truncate_snippet(_first_text(record.snippet, record.summary, excerpt, record.text)),
        }
    if isinstance(record, GroundingChunkRecord):
        segments = " ".join(s.strip() for s in record.segment_texts if isinstance(s, str) and s.strip())
        return {
            "title": _first_text(record.title, record.domain) or DEFAULT_TITLES[kind],
            "url": _first_text(record.uri),
            "snippet": truncate_snippet(_first_text(segments, record.text)),
        }
    # UnknownRecord: minimally populated
    return {"title": DEFAULT_TITLES[kind], "url": None, "snippet": None}


def normalize_results(raw_results: Optional[Iterable[Any]], kind: EvidenceKind) -> List[Evidence]:
    """
    Normalize raw provider results into Evidence, one record per input item, order preserved.

    IDs come from the provider where present, otherwise ``"<kind>-<index>"``.
    Duplicate provider IDs within the list are suffixed with their index.
    """
    if raw_results is None:
        return []

    # A string or a wrapper object is one malformed result, not a list of them
    if isinstance(raw_results, (str, bytes, Mapping)):
        logger.warning(f"Non-list {kind.value} results ignored: {type(raw_results).__name__}")
        return []

    try:
        items = list(raw_results)
    except TypeError:
        logger.warning(f"Non-iterable {kind.value} results ignored: {type(raw_results).__name__}")
        return []

    evidence: List[Evidence] = []
    seen_ids = set()

    for index, item in enumerate(items):
        record = classify_record(item)
        if isinstance(record, UnknownRecord):
            logger.warning(f"Unrecognized {kind.value} result at index {index}: {type(item).__name__}")

        evidence_id = _source_id(record) or f"{kind.value}-{index}"
        while evidence_id in seen_ids:
            evidence_id = f"{evidence_id}-{index}"
        seen_ids.add(evidence_id)

        evidence.append(Evidence(id=evidence_id, kind=kind, raw=item, **_fields(record, kind)))

    return evidence
