import asyncio

import pytest

from app.core.exceptions import MissingInputError, PipelineTimeoutError
from app.core.logger import get_correlation_id
from app.schemas.report import InterviewReport
from app.schemas.research import QuerySpec
from app.services.research.fallback import FallbackPolicy, example_report, missing_fields
from app.services.research.interview_pipeline import InterviewPipeline
from app.services.research.orchestrator import ResearchOrchestrator
from app.services.research.resume import InMemoryResumeStore
from app.services.research.synthesis import SynthesisService
from app.tests.fakes import LINKEDIN_URL, FakeSummarizer, make_adapters

FULL_SPEC = QuerySpec(company="Acme", role="Software Engineer", interviewer_linkedin_url=LINKEDIN_URL)


def _pipeline(providers, summarizer, settings, resume_store=None):
    adapters = make_adapters(providers["company"], providers["questions"], providers["interviewer"])
    return InterviewPipeline(
        orchestrator=ResearchOrchestrator(providers["company"], adapters=adapters),
        synthesis=SynthesisService(summarizer, settings),
        fallback=FallbackPolicy(),
        resume_provider=resume_store or InMemoryResumeStore(),
        settings=settings,
    )


@pytest.mark.parametrize("spec, expected", [
    (QuerySpec(), ["company", "role", "interviewer_linkedin_url"]),
    (QuerySpec(company="Acme", interviewer_linkedin_url=LINKEDIN_URL), ["role"]),
    (QuerySpec(company="Acme", role="SWE", interviewer_linkedin_url="not a url"), ["interviewer_linkedin_url"]),
    (FULL_SPEC, []),
])
def test_missing_fields(spec, expected):
    assert missing_fields(spec) == expected


def test_example_report_is_valid_and_fresh_each_call():
    first = example_report()
    first.top_questions.clear()

    second = example_report()

    assert isinstance(second, InterviewReport)
    assert len(second.top_questions) == 5
    assert 3 <= len(second.tailored_questions_for_interviewer) <= 5


@pytest.mark.asyncio
async def test_missing_role_serves_example_with_zero_searches(providers, test_settings, valid_report_json):
    """
    WHY: Incomplete requests must not spend provider quota.
    HOW: Run the pipeline without a role.
    EXPECTED: Example report, source 'example', no search or summarizer calls.
    """
    summarizer = FakeSummarizer([valid_report_json])
    spec = FULL_SPEC.model_copy(update={"role": None})

    result = await _pipeline(providers, summarizer, test_settings).run(spec)

    assert result.source == "example"
    assert result.report == example_report()
    assert get_correlation_id() is not None
    assert all(provider.calls == [] for provider in providers.values())
    assert summarizer.calls == []


@pytest.mark.asyncio
async def test_live_run_uses_evidence_and_resume(providers, test_settings, valid_report_json):
    """
    WHY: Complete requests go through aggregation and synthesis.
    HOW: Store resume text for a session, then run the pipeline for that session.
    EXPECTED: 'live' report; each source searched once; resume text reaches the summarizer.
    """
    store = InMemoryResumeStore()
    await store.put("session-1", "Built a payments platform in Go.")
    summarizer = FakeSummarizer([valid_report_json])

    result = await _pipeline(providers, summarizer, test_settings, store).run(FULL_SPEC, session_id="session-1")

    assert result.source == "live"
    assert len(result.report.top_questions) == 5
    assert all(len(provider.calls) == 1 for provider in providers.values())
    assert "Built a payments platform in Go." in summarizer.calls[0]["user"]


@pytest.mark.asyncio
async def test_live_run_without_resume_still_synthesizes(providers, test_settings, valid_report_json):
    summarizer = FakeSummarizer([valid_report_json])

    result = await _pipeline(providers, summarizer, test_settings).run(FULL_SPEC, session_id="unknown")

    assert result.source == "live"
    assert "RESUME_TEXT" not in summarizer.calls[0]["user"]


@pytest.mark.asyncio
async def test_whole_pipeline_deadline(providers, test_settings, valid_report_json):
    """
    WHY: The pipeline as a whole is bounded, independent of per-source deadlines.
    HOW: Pipeline deadline of 50ms, sources answer after 300ms within their own 1s deadline.
    EXPECTED: PipelineTimeoutError.
    """
    for provider in providers.values():
        provider.delay_s = 0.3
    settings = test_settings.model_copy(update={"PIPELINE_TIMEOUT_MS": 50})
    spec = FULL_SPEC.model_copy(update={"timeout_ms": 1000})

    with pytest.raises(PipelineTimeoutError):
        await _pipeline(providers, FakeSummarizer([valid_report_json]), settings).run(spec)


class _NeverFallback(FallbackPolicy):
    def should_fallback(self, spec):
        return False


@pytest.mark.asyncio
async def test_missing_input_after_gate_is_reraised(providers, test_settings, valid_report_json):
    """
    WHY: If the gate lets an incomplete query through, the adapters' own check is the backstop.
    HOW: Use a fallback policy that never falls back and omit the role.
    EXPECTED: MissingInputError surfaces; the summarizer is never called.
    """
    summarizer = FakeSummarizer([valid_report_json])
    pipeline = _pipeline(providers, summarizer, test_settings)
    pipeline.fallback = _NeverFallback()

    with pytest.raises(MissingInputError):
        await pipeline.run(FULL_SPEC.model_copy(update={"role": None}))

    assert summarizer.calls == []


@pytest.mark.asyncio
async def test_resume_store_evicts_oldest_session_when_full():
    """
    WHY: Every cookie-less upload creates a session, so the store must stay bounded.
    HOW: Store three sessions in a store that holds two.
    EXPECTED: The first session reads back as None; the store holds two.
    """
    store = InMemoryResumeStore(maxsize=2, ttl=60)
    for session_id in ("s1", "s2", "s3"):
        await store.put(session_id, f"resume {session_id}")

    assert await store.get_resume_text("s1") is None
    assert await store.get_resume_text("s3") == "resume s3"
    assert len(store) == 2


@pytest.mark.asyncio
async def test_resume_store_expires_idle_sessions():
    store = InMemoryResumeStore(maxsize=10, ttl=0.05)
    await store.put("s1", "Built a payments platform in Go.")

    await asyncio.sleep(0.1)

    assert await store.get_resume_text("s1") is None
    assert len(store) == 0
