import json

import pytest

from app.core.exceptions import FeedbackFormatError, SynthesisFormatError
from app.services.research.feedback import AnswerFeedbackService
from app.tests.fakes import FakeSummarizer

QUESTION = "Tell me about a time you disagreed with a teammate."
ANSWER = "On the billing team I pushed back on a rewrite and we shipped an incremental fix instead."

VALID_FEEDBACK = json.dumps({
    "score": 4,
    "strengths": ["Concrete example", "Clear outcome"],
    "weaknesses": ["No metric for the impact"],
    "feedback": "Good structure. Quantify what the incremental fix saved.",
})


@pytest.mark.asyncio
async def test_feedback_is_parsed_from_summarizer_output(test_settings):
    """
    WHY: A well-formed evaluator answer becomes a typed feedback object.
    HOW: Fake summarizer returns fenced JSON, which the parser cleans up.
    EXPECTED: Score and lists carried over; question and answer both reach the prompt.
    """
    summarizer = FakeSummarizer([f"```json\n{VALID_FEEDBACK}\n```"])

    feedback = await AnswerFeedbackService(summarizer, test_settings).evaluate(QUESTION, ANSWER)

    assert feedback.score == 4
    assert feedback.strengths == ["Concrete example", "Clear outcome"]
    assert feedback.weaknesses == ["No metric for the impact"]
    assert len(summarizer.calls) == 1
    assert QUESTION in summarizer.calls[0]["user"]
    assert ANSWER in summarizer.calls[0]["user"]
    assert '"score"' in summarizer.calls[0]["system"]


@pytest.mark.asyncio
async def test_out_of_range_score_is_retried_with_the_error(test_settings):
    """
    WHY: Scores outside 1-5 violate the contract and get one corrective re-ask.
    HOW: First response scores 9, second is valid.
    EXPECTED: Two calls; the second prompt carries the rejection; valid feedback returned.
    """
    bad = json.dumps({**json.loads(VALID_FEEDBACK), "score": 9})
    summarizer = FakeSummarizer([bad, VALID_FEEDBACK])

    feedback = await AnswerFeedbackService(summarizer, test_settings).evaluate(QUESTION, ANSWER)

    assert feedback.score == 4
    assert len(summarizer.calls) == 2
    assert "previous answer was rejected" in summarizer.calls[1]["user"]


@pytest.mark.asyncio
async def test_persistently_invalid_output_raises_feedback_format_error(test_settings):
    summarizer = FakeSummarizer(["I think the answer was pretty good."])

    with pytest.raises(FeedbackFormatError) as exc_info:
        await AnswerFeedbackService(summarizer, test_settings).evaluate(QUESTION, ANSWER)

    assert isinstance(exc_info.value, SynthesisFormatError)
    assert len(exc_info.value.details["errors"]) == 2
    assert len(summarizer.calls) == 2
