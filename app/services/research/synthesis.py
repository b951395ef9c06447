"""
Synthesis stage: Evidence Bundle -> InterviewReport.

The summarizer is asked for one JSON object matching InterviewReport. Output
that fails to parse or validate gets a bounded number of re-asks with the
error fed back. A validated report then passes the citation gate, which
removes citations outside each section's partition and lowers confidence
accordingly.
"""
import logging
import time
from typing import List, Optional, Protocol, Set

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_groq import ChatGroq

from app.core.config import Settings
from app.core.exceptions import SynthesisFormatError, UpstreamError
from app.core.logger import log_async_execution_time
from app.core.prompts import (
    generate_retry_prompt,
    generate_synthesis_system_prompt,
    generate_synthesis_user_prompt,
)
from app.schemas.evidence import EvidenceBundle
from app.schemas.report import CitedModel, InterviewReport, SECTION_PARTITIONS
from app.schemas.research import QuerySpec
from app.services.research.llm_parser import parse_llm_response
from app.services.research.rate_limiter import ServiceRateLimiter, safe_api_call

logger = logging.getLogger(__name__)


class Summarizer(Protocol):
    async def complete(self, system: str, user: str) -> str:
        ...


class GroqSummarizer:
    """Summarizer backed by a ChatGroq model."""

    def __init__(self, model: ChatGroq, limiter: Optional[ServiceRateLimiter] = None):
        self._model = model
        self._limiter = limiter

    async def complete(self, system: str, user: str) -> str:
        messages = [SystemMessage(content=system), HumanMessage(content=user)]
        logger.info(f"[Synthesis] LangChain Groq API call starting ({len(system) + len(user)} chars)")
        start_time = time.perf_counter()
        try:
            response = await safe_api_call(self._model.ainvoke, messages, service='groq', limiter=self._limiter)
        except Exception as e:
            logger.error(f"Groq call failed: {e}", exc_info=True)
            raise UpstreamError("groq", "Summarization provider call failed", details={"error": str(e)}) from e

        logger.info(f"[Synthesis] Groq responded in {time.perf_counter() - start_time:.2f}s")
        content = response.content if hasattr(response, 'content') else response
        return content if isinstance(content, str) else str(content)


def _gate_entry(entry: CitedModel, allowed: Set[str], cap: float, label: str) -> CitedModel:
    cited = entry.source_ids
    kept = [source_id for source_id in dict.fromkeys(cited) if source_id in allowed]
    confidence = entry.confidence

    if cited:
        stripped = [source_id for source_id in cited if source_id not in allowed]
        if stripped:
            logger.warning(f"[Citation gate] {label}: stripped out-of-partition ids {stripped}")
        confidence *= len(kept) / len(dict.fromkeys(cited))
    if not kept:
        confidence = min(confidence, cap)

    return entry.model_copy(update={"source_ids": kept, "confidence": round(confidence, 4)})


def enforce_citations(report: InterviewReport, bundle: EvidenceBundle, unsupported_cap: float = 0.4) -> InterviewReport:
    """
    Restrict every section's citations to its own partition.

    Citations not found in the partition are removed and the entry's
    confidence is scaled by the fraction that survived. Entries left with no
    citations are capped at ``unsupported_cap``. Violations are logged.
    """
    update = {}
    for section, partition in SECTION_PARTITIONS.items():
        allowed = bundle.ids(partition)
        value = getattr(report, section)
        if isinstance(value, list):
            update[section] = [
                _gate_entry(entry, allowed, unsupported_cap, f"{section}[{i}]")
                for i, entry in enumerate(value)
            ]
        else:
            update[section] = _gate_entry(value, allowed, unsupported_cap, section)

    # Reading list links may only reference company evidence
    company = update["company_insights_out"]
    company_ids = bundle.ids(SECTION_PARTITIONS["company_insights_out"])
    reading_list = [
        item if item.source_id is None or item.source_id in company_ids
        else item.model_copy(update={"source_id": None})
        for item in company.reading_list
    ]
    update["company_insights_out"] = company.model_copy(update={"reading_list": reading_list})

    return report.model_copy(update=update)


class SynthesisService:
    """Turns an Evidence Bundle into a validated, citation-checked InterviewReport."""

    def __init__(self, summarizer: Summarizer, settings: Settings):
        self._summarizer = summarizer
        self._max_retries = max(0, settings.SYNTHESIS_MAX_RETRIES)
        self._confidence_cap = settings.UNSUPPORTED_CONFIDENCE_CAP
        self._resume_max_chars = settings.RESUME_MAX_CHARS

    @log_async_execution_time
    async def synthesize(
        self,
        bundle: EvidenceBundle,
        spec: QuerySpec,
        resume_text: Optional[str] = None,
    ) -> InterviewReport:
        system_prompt = generate_synthesis_system_prompt(self._confidence_cap)
        user_prompt = generate_synthesis_user_prompt(spec, bundle, resume_text, self._resume_max_chars)

        attempts = self._max_retries + 1
        prompt = user_prompt
        errors: List[str] = []
        for attempt in range(1, attempts + 1):
            raw = await self._summarizer.complete(system_prompt, prompt)
            try:
                report = parse_llm_response(raw, InterviewReport)
            except SynthesisFormatError as e:
                logger.warning(f"[Synthesis] Attempt {attempt}/{attempts} produced invalid output")
                errors.append(e.message)
                prompt = generate_retry_prompt(user_prompt, e.message)
                continue

            logger.info(f"[Synthesis] Valid report on attempt {attempt}/{attempts}")
            return enforce_citations(report, bundle, self._confidence_cap)

        raise SynthesisFormatError(
            f"Summarizer output invalid after {attempts} attempt(s)",
            details={"errors": errors},
        )
