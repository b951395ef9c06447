"""
Interview report schema: the contract the summarizer's output must satisfy.

Every section carries a ``confidence`` in [0, 1] and ``source_ids`` that may
only name evidence from one Evidence Bundle partition (see SECTION_PARTITIONS).
"""
from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from app.schemas.evidence import Partition

INSUFFICIENT_EVIDENCE = "insufficient_evidence"

Difficulty = Literal["easy", "medium", "hard"]
QuestionCategory = Literal[
    "behavioral", "system_design", "coding", "ml", "data", "infra", "role_specific", "resume_based"
]


class CitedModel(BaseModel):
    """Base for any report entry that cites evidence."""
    confidence: float = Field(..., ge=0.0, le=1.0, description="Confidence score between 0 and 1.")
    source_ids: List[str] = Field(default_factory=list, description="Evidence IDs from this entry's partition.")


class InterviewRound(BaseModel):
    name: str
    focus: str
    signals: List[str] = Field(default_factory=list)


class TopicWeight(BaseModel):
    topic: str
    weight_0to1: float = Field(..., ge=0.0, le=1.0)


class WhatToExpect(CitedModel):
    summary: str
    rounds: List[InterviewRound] = Field(default_factory=list)
    topic_weights: List[TopicWeight] = Field(default_factory=list)
    timeline_hint: str = INSUFFICIENT_EVIDENCE
    difficulty: Difficulty = "medium"


class TopQuestion(CitedModel):
    question: str
    category: QuestionCategory
    rationale: str
    how_to_prepare: List[str] = Field(default_factory=list)
    predicted_difficulty: Difficulty = "medium"
    evaluation_criteria: List[str] = Field(default_factory=list)


class ReadingItem(BaseModel):
    title: str
    url: str
    source_id: Optional[str] = None


class CompanyInsights(CitedModel):
    one_liner: str
    products: List[str] = Field(default_factory=list)
    tech_stack: List[str] = Field(default_factory=list)
    recent_news_or_ships: List[str] = Field(default_factory=list)
    culture_themes: List[str] = Field(default_factory=list)
    role_specific_context: str = INSUFFICIENT_EVIDENCE
    reading_list: List[ReadingItem] = Field(default_factory=list)


class TailoredQuestion(CitedModel):
    question: str = Field(..., description="Personalized to the interviewer's public professional background.")
    tie_in: str = Field(..., description="How the question relates to their work or public interests.")


class InterviewReport(BaseModel):
    """Structured interview preparation report."""
    what_to_expect: WhatToExpect
    top_questions: List[TopQuestion] = Field(..., min_length=5, max_length=5, description="Exactly 5 questions.")
    company_insights_out: CompanyInsights
    tailored_questions_for_interviewer: List[TailoredQuestion] = Field(
        ..., min_length=3, max_length=5, description="3-5 questions to ask the interviewer."
    )


# Which partition each section may cite
SECTION_PARTITIONS: Dict[str, Partition] = {
    "what_to_expect": Partition.QUESTIONS,
    "top_questions": Partition.QUESTIONS,
    "company_insights_out": Partition.COMPANY,
    "tailored_questions_for_interviewer": Partition.INTERVIEWER,
}
