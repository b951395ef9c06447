"""
Answer feedback: score a practice answer to an interview question.

Uses the same summarizer as report synthesis. Malformed output gets the same
bounded re-ask with the validation error fed back.
"""
import logging
from typing import List

from app.core.config import Settings
from app.core.exceptions import FeedbackFormatError, SynthesisFormatError
from app.core.logger import log_async_execution_time
from app.core.prompts import (
    generate_feedback_system_prompt,
    generate_feedback_user_prompt,
    generate_retry_prompt,
)
from app.schemas.feedback import AnswerFeedback
from app.services.research.llm_parser import parse_llm_response
from app.services.research.synthesis import Summarizer

logger = logging.getLogger(__name__)


class AnswerFeedbackService:
    def __init__(self, summarizer: Summarizer, settings: Settings):
        self._summarizer = summarizer
        self._max_retries = max(0, settings.SYNTHESIS_MAX_RETRIES)
        self._answer_max_chars = settings.RESUME_MAX_CHARS

    @log_async_execution_time
    async def evaluate(self, question: str, answer: str) -> AnswerFeedback:
        system_prompt = generate_feedback_system_prompt()
        user_prompt = generate_feedback_user_prompt(question, answer, self._answer_max_chars)

        attempts = self._max_retries + 1
        prompt = user_prompt
        errors: List[str] = []
        for attempt in range(1, attempts + 1):
            raw = await self._summarizer.complete(system_prompt, prompt)
            try:
                feedback = parse_llm_response(raw, AnswerFeedback)
            except SynthesisFormatError as e:
                logger.warning(f"[Feedback] Attempt {attempt}/{attempts} produced invalid output")
                errors.append(e.message)
                prompt = generate_retry_prompt(user_prompt, e.message)
                continue

            logger.info(f"[Feedback] Scored answer {feedback.score}/5 on attempt {attempt}/{attempts}")
            return feedback

        raise FeedbackFormatError(
            f"Evaluator output invalid after {attempts} attempt(s)",
            details={"errors": errors},
        )
