from typing import List

from pydantic import BaseModel, Field, field_validator


class AnswerFeedbackRequest(BaseModel):
    """A practice question and the candidate's answer to it."""
    question: str = Field(..., min_length=1, description="The interview question that was asked.")
    answer: str = Field(..., min_length=1, description="The candidate's answer, as plain text.")

    @field_validator("question", "answer")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class AnswerFeedback(BaseModel):
    """Evaluator verdict on one answer."""
    score: int = Field(..., ge=1, le=5, description="1 = very poor or incomplete, 5 = excellent and well structured.")
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    feedback: str = Field(..., min_length=1, description="One short paragraph of constructive feedback.")
