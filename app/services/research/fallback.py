"""
Fallback policy.

When the request lacks the fields a live run needs, the pipeline serves a
static, schema-valid example report instead of calling any provider.
"""
import logging
from typing import List

from app.schemas.report import INSUFFICIENT_EVIDENCE, InterviewReport
from app.schemas.research import QuerySpec
from app.services.research.adapters import is_profile_url

logger = logging.getLogger(__name__)

_EXAMPLE_REPORT = InterviewReport.model_validate({
    "what_to_expect": {
        "summary": (
            "Example report. A typical software engineering loop opens with a recruiter screen, "
            "continues with one or two technical rounds, and closes with a behavioral conversation."
        ),
        "rounds": [
            {"name": "Recruiter screen", "focus": "Motivation and role fit", "signals": ["communication", "interest in the team"]},
            {"name": "Technical interview", "focus": "Data structures and problem solving", "signals": ["correctness", "complexity analysis"]},
            {"name": "System design", "focus": "Designing a service end to end", "signals": ["trade-offs", "scalability"]},
            {"name": "Behavioral", "focus": "Past projects and collaboration", "signals": ["ownership", "impact"]},
        ],
        "topic_weights": [
            {"topic": "coding", "weight_0to1": 0.4},
            {"topic": "system design", "weight_0to1": 0.3},
            {"topic": "behavioral", "weight_0to1": 0.3},
        ],
        "timeline_hint": INSUFFICIENT_EVIDENCE,
        "difficulty": "medium",
        "confidence": 0.2,
        "source_ids": [],
    },
    "top_questions": [
        {
            "question": "Tell me about a project you are proud of and the impact it had.",
            "category": "behavioral",
            "rationale": "Opens almost every loop and anchors the rest of the conversation.",
            "how_to_prepare": ["Pick one project", "Quantify the outcome", "Explain your specific role"],
            "predicted_difficulty": "easy",
            "evaluation_criteria": ["clarity", "ownership", "measurable impact"],
            "confidence": 0.2,
            "source_ids": [],
        },
        {
            "question": "Given an array of integers, return the indices of two numbers that add up to a target.",
            "category": "coding",
            "rationale": "A common warm-up that checks hashing and complexity reasoning.",
            "how_to_prepare": ["Practice hash map patterns", "State time and space complexity"],
            "predicted_difficulty": "easy",
            "evaluation_criteria": ["correctness", "optimal complexity", "edge cases"],
            "confidence": 0.2,
            "source_ids": [],
        },
        {
            "question": "Design a URL shortening service.",
            "category": "system_design",
            "rationale": "Tests API design, storage choices and scaling in a compact problem.",
            "how_to_prepare": ["Review key generation strategies", "Discuss caching and read-heavy load"],
            "predicted_difficulty": "medium",
            "evaluation_criteria": ["requirements gathering", "data model", "scaling trade-offs"],
            "confidence": 0.2,
            "source_ids": [],
        },
        {
            "question": "Describe a time you disagreed with a teammate and how you resolved it.",
            "category": "behavioral",
            "rationale": "Probes collaboration and conflict handling.",
            "how_to_prepare": ["Use the STAR format", "Focus on the resolution and what you learned"],
            "predicted_difficulty": "medium",
            "evaluation_criteria": ["empathy", "communication", "outcome"],
            "confidence": 0.2,
            "source_ids": [],
        },
        {
            "question": "How would you debug a service whose latency doubled after a deploy?",
            "category": "role_specific",
            "rationale": "Checks practical operational reasoning for production systems.",
            "how_to_prepare": ["Review profiling and tracing tools", "Practice a structured rollback-first approach"],
            "predicted_difficulty": "medium",
            "evaluation_criteria": ["structured approach", "use of metrics", "risk awareness"],
            "confidence": 0.2,
            "source_ids": [],
        },
    ],
    "company_insights_out": {
        "one_liner": INSUFFICIENT_EVIDENCE,
        "products": [],
        "tech_stack": [],
        "recent_news_or_ships": [],
        "culture_themes": [],
        "role_specific_context": INSUFFICIENT_EVIDENCE,
        "reading_list": [],
        "confidence": 0.1,
        "source_ids": [],
    },
    "tailored_questions_for_interviewer": [
        {
            "question": "What does a successful first six months look like for someone in this role?",
            "tie_in": "Shows interest in the interviewer's expectations for the team.",
            "confidence": 0.2,
            "source_ids": [],
        },
        {
            "question": "Which recent project on your team are you most excited about?",
            "tie_in": "Invites the interviewer to talk about their own work.",
            "confidence": 0.2,
            "source_ids": [],
        },
        {
            "question": "How does the team balance shipping quickly with long-term code quality?",
            "tie_in": "Connects to engineering practices the interviewer lives with daily.",
            "confidence": 0.2,
            "source_ids": [],
        },
    ],
})


def missing_fields(spec: QuerySpec) -> List[str]:
    """Required fields that are blank or unusable. The interviewer URL must be an http(s) URL."""
    missing = [field for field in ("company", "role") if not getattr(spec, field)]
    if not is_profile_url(spec.interviewer_linkedin_url):
        missing.append("interviewer_linkedin_url")
    return missing


def example_report() -> InterviewReport:
    """A fresh copy of the static example report."""
    return _EXAMPLE_REPORT.model_copy(deep=True)


class FallbackPolicy:
    """Decides whether a request gets the example report instead of a live run."""

    def should_fallback(self, spec: QuerySpec) -> bool:
        missing = missing_fields(spec)
        if missing:
            logger.info(f"Serving example report; missing fields: {', '.join(missing)}")
            return True
        return False

    def example_report(self) -> InterviewReport:
        return example_report()
