"""
Interview report pipeline.

Fallback gate -> evidence aggregation -> resume lookup -> synthesis, with the
whole run bounded by PIPELINE_TIMEOUT_MS.
"""
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Literal, Optional

from app.core.config import Settings
from app.core.exceptions import MissingInputError
from app.core.logger import set_correlation_id
from app.schemas.report import InterviewReport
from app.schemas.research import QuerySpec
from app.services.research.fallback import FallbackPolicy
from app.services.research.orchestrator import ResearchOrchestrator
from app.services.research.resume import ResumeTextProvider
from app.services.research.synthesis import SynthesisService
from app.services.research.timed_fetch import with_deadline

logger = logging.getLogger(__name__)

ReportSource = Literal["example", "live"]


@dataclass(frozen=True)
class PipelineResult:
    report: InterviewReport
    source: ReportSource


class InterviewPipeline:
    """Produces one InterviewReport per request. All collaborators are injected."""

    def __init__(
        self,
        orchestrator: ResearchOrchestrator,
        synthesis: SynthesisService,
        fallback: FallbackPolicy,
        resume_provider: ResumeTextProvider,
        settings: Settings,
    ):
        self.orchestrator = orchestrator
        self.synthesis = synthesis
        self.fallback = fallback
        self.resume_provider = resume_provider
        self.pipeline_timeout_ms = settings.PIPELINE_TIMEOUT_MS

    async def run(self, spec: QuerySpec, session_id: Optional[str] = None) -> PipelineResult:
        run_id = str(uuid.uuid4())[:8]
        set_correlation_id(run_id)
        logger.info(f"Pipeline run {run_id} started")

        if self.fallback.should_fallback(spec):
            return PipelineResult(report=self.fallback.example_report(), source="example")

        start_time = time.perf_counter()
        report = await with_deadline(
            self._run_live(spec, session_id),
            self.pipeline_timeout_ms,
            label="interview pipeline",
        )
        logger.info(f"Pipeline run {run_id} finished in {time.perf_counter() - start_time:.2f}s")
        return PipelineResult(report=report, source="live")

    async def _run_live(self, spec: QuerySpec, session_id: Optional[str]) -> InterviewReport:
        try:
            bundle = await self.orchestrator.aggregate(spec)
        except MissingInputError as e:
            # The fallback gate should have caught this
            logger.error(f"Defect: adapter reported missing '{e.field}' after the fallback gate passed")
            raise

        resume_text = await self.resume_provider.get_resume_text(session_id)
        if not resume_text:
            logger.info("No resume text on file; synthesizing without it")

        return await self.synthesis.synthesize(bundle, spec, resume_text=resume_text)
