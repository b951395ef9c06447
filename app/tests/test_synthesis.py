import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.exceptions import SynthesisFormatError, UpstreamError
from app.schemas.evidence import EvidenceBundle, EvidenceKind
from app.schemas.report import InterviewReport
from app.schemas.research import QuerySpec
from app.services.research.llm_parser import clean_llm_json_output, parse_llm_response
from app.services.research.normalizer import normalize_results
from app.services.research.synthesis import GroqSummarizer, SynthesisService, enforce_citations
from app.tests.fakes import (
    COMPANY_RESULTS,
    INTERVIEWER_RESULTS,
    LINKEDIN_URL,
    QUESTION_RESULTS,
    FakeSummarizer,
    report_payload,
)

SPEC = QuerySpec(company="Acme", role="Software Engineer", interviewer_linkedin_url=LINKEDIN_URL)


def _bundle(interviewer=INTERVIEWER_RESULTS) -> EvidenceBundle:
    return EvidenceBundle(
        company=normalize_results(COMPANY_RESULTS, EvidenceKind.SOURCE),
        questions=normalize_results(QUESTION_RESULTS, EvidenceKind.QUESTION),
        interviewer=normalize_results(interviewer, EvidenceKind.PERSON),
    )


def _assert_citations_in_partitions(report: InterviewReport, bundle: EvidenceBundle):
    assert set(report.what_to_expect.source_ids) <= bundle.ids("questions")
    for question in report.top_questions:
        assert set(question.source_ids) <= bundle.ids("questions")
    assert set(report.company_insights_out.source_ids) <= bundle.ids("company")
    for question in report.tailored_questions_for_interviewer:
        assert set(question.source_ids) <= bundle.ids("interviewer")


@pytest.mark.asyncio
async def test_valid_output_produces_cited_report(test_settings, valid_report_json):
    """
    WHY: A well-formed summarizer answer should pass through with its citations intact.
    HOW: Fake summarizer returns a valid report citing in-partition ids.
    EXPECTED: Exactly 5 top questions, every citation inside its partition, one summarizer call.
    """
    summarizer = FakeSummarizer([valid_report_json])
    bundle = _bundle()

    report = await SynthesisService(summarizer, test_settings).synthesize(bundle, SPEC)

    assert len(report.top_questions) == 5
    _assert_citations_in_partitions(report, bundle)
    assert report.company_insights_out.source_ids == ["c1"]
    assert report.company_insights_out.confidence == 0.9
    assert len(summarizer.calls) == 1


@pytest.mark.asyncio
async def test_empty_interviewer_partition_caps_confidence(test_settings, valid_report_json):
    """
    WHY: Interviewer questions cannot be supported without interviewer evidence.
    HOW: Interviewer search returned nothing, but the summarizer still cites 'p1'.
    EXPECTED: Every tailored question has no source_ids and confidence <= 0.4.
    """
    bundle = _bundle(interviewer=[])

    report = await SynthesisService(FakeSummarizer([valid_report_json]), test_settings).synthesize(bundle, SPEC)

    for question in report.tailored_questions_for_interviewer:
        assert question.source_ids == []
        assert question.confidence <= 0.4


def test_cross_partition_citations_are_stripped_and_confidence_scaled():
    """
    WHY: A section may only cite evidence from its own partition.
    HOW: A top question cites one question id and one company id at confidence 0.8.
    EXPECTED: The company id is removed and confidence halves to 0.4.
    """
    payload = report_payload()
    payload["top_questions"][0]["source_ids"] = ["q1", "c1"]
    report = InterviewReport.model_validate(payload)

    gated = enforce_citations(report, _bundle(), unsupported_cap=0.4)

    assert gated.top_questions[0].source_ids == ["q1"]
    assert gated.top_questions[0].confidence == pytest.approx(0.4)
    # untouched entries keep their confidence
    assert gated.top_questions[1].confidence == pytest.approx(0.8)
    # the input report is not mutated
    assert report.top_questions[0].source_ids == ["q1", "c1"]


def test_uncited_entries_are_capped():
    payload = report_payload()
    payload["company_insights_out"]["source_ids"] = []
    payload["company_insights_out"]["confidence"] = 0.95
    payload["company_insights_out"]["reading_list"] = [
        {"title": "Blog", "url": "https://acme.example/blog", "source_id": "c1"},
        {"title": "Thread", "url": "https://reddit.example/acme", "source_id": "q1"},
    ]

    gated = enforce_citations(InterviewReport.model_validate(payload), _bundle(), unsupported_cap=0.4)

    assert gated.company_insights_out.confidence == pytest.approx(0.4)
    assert [item.source_id for item in gated.company_insights_out.reading_list] == ["c1", None]


@pytest.mark.asyncio
async def test_invalid_then_valid_output_retries_once(test_settings, valid_report_json):
    """
    WHY: One malformed answer should not fail the request.
    HOW: First response is prose, second is a valid report wrapped in a code fence.
    EXPECTED: Two summarizer calls; the retry prompt carries the rejection reason.
    """
    summarizer = FakeSummarizer(["Sorry, here is my analysis.", f"```json\n{valid_report_json}\n```"])

    report = await SynthesisService(summarizer, test_settings).synthesize(_bundle(), SPEC)

    assert len(report.top_questions) == 5
    assert len(summarizer.calls) == 2
    assert "previous answer was rejected" in summarizer.calls[1]["user"]


@pytest.mark.asyncio
async def test_persistently_invalid_output_raises_after_bounded_retry(test_settings):
    """
    WHY: Retrying must be bounded.
    HOW: Summarizer always returns a report with only 4 top questions.
    EXPECTED: SynthesisFormatError after exactly two calls.
    """
    payload = report_payload()
    payload["top_questions"] = payload["top_questions"][:4]
    summarizer = FakeSummarizer([json.dumps(payload)])

    with pytest.raises(SynthesisFormatError):
        await SynthesisService(summarizer, test_settings).synthesize(_bundle(), SPEC)

    assert len(summarizer.calls) == 2


@pytest.mark.asyncio
async def test_prompts_carry_evidence_without_raw_payloads(test_settings, valid_report_json):
    summarizer = FakeSummarizer([valid_report_json])
    bundle = _bundle()
    bundle.company[0].raw = {"secret_marker": "do-not-send"}
    resume = "R" * 7000

    await SynthesisService(summarizer, test_settings).synthesize(bundle, SPEC, resume_text=resume)

    call = summarizer.calls[0]
    assert "do-not-send" not in call["user"]
    assert '"id": "c1"' in call["user"]
    assert "R" * 6000 in call["user"] and "R" * 6001 not in call["user"]
    assert "insufficient_evidence" in call["system"]
    assert "company_insights_out" in call["system"]


def test_clean_llm_json_output_extracts_object_from_prose():
    raw = 'Here you go:\n{"a": 1}\nThanks!'
    assert json.loads(clean_llm_json_output(raw)) == {"a": 1}
    assert clean_llm_json_output("") == ""


def test_parse_llm_response_rejects_non_objects():
    with pytest.raises(SynthesisFormatError):
        parse_llm_response("[1, 2, 3]", InterviewReport)


@pytest.mark.asyncio
async def test_groq_summarizer_sends_system_and_user_messages():
    model = MagicMock()
    model.ainvoke = AsyncMock(return_value=SimpleNamespace(content='{"ok": true}'))

    text = await GroqSummarizer(model).complete("system text", "user text")

    assert text == '{"ok": true}'
    messages = model.ainvoke.await_args.args[0]
    assert [m.content for m in messages] == ["system text", "user text"]


@pytest.mark.asyncio
async def test_groq_summarizer_wraps_provider_errors():
    model = MagicMock()
    model.ainvoke = AsyncMock(side_effect=ValueError("bad request"))

    with pytest.raises(UpstreamError) as exc_info:
        await GroqSummarizer(model).complete("s", "u")

    assert exc_info.value.provider == "groq"
