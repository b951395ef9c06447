import json
from typing import Dict, List, Optional

from app.schemas.evidence import EvidenceBundle
from app.schemas.report import INSUFFICIENT_EVIDENCE, SECTION_PARTITIONS
from app.schemas.research import QuerySpec


REPORT_JSON_SHAPE = """{
  "what_to_expect": {
    "summary": string,
    "rounds": [ { "name": string, "focus": string, "signals": string[] } ],
    "topic_weights": [ { "topic": string, "weight_0to1": number } ],
    "timeline_hint": string,
    "difficulty": "easy" | "medium" | "hard",
    "confidence": number,
    "source_ids": string[]
  },
  "top_questions": [
    {
      "question": string,
      "category": "behavioral" | "system_design" | "coding" | "ml" | "data" | "infra" | "role_specific" | "resume_based",
      "rationale": string,
      "how_to_prepare": string[],
      "predicted_difficulty": "easy" | "medium" | "hard",
      "evaluation_criteria": string[],
      "confidence": number,
      "source_ids": string[]
    }
  ],
  "company_insights_out": {
    "one_liner": string,
    "products": string[],
    "tech_stack": string[],
    "recent_news_or_ships": string[],
    "culture_themes": string[],
    "role_specific_context": string,
    "reading_list": [ { "title": string, "url": string, "source_id": string | null } ],
    "confidence": number,
    "source_ids": string[]
  },
  "tailored_questions_for_interviewer": [
    { "question": string, "tie_in": string, "confidence": number, "source_ids": string[] }
  ]
}"""


def generate_synthesis_system_prompt(unsupported_confidence_cap: float) -> str:
    """
    System prompt for the report writer.

    Args:
        unsupported_confidence_cap: Highest confidence allowed for content with no supporting evidence.

    Returns:
        The formatted system prompt.
    """
    scope_lines = "\n".join(
        f"- {section}: cite ONLY ids from the \"{partition.value}\" evidence"
        for section, partition in SECTION_PARTITIONS.items()
    )
    return (
        "You are an interviewing-prep analyst.\n\n"
        "You receive pre-fetched evidence grouped into three partitions: company, questions and interviewer.\n"
        "Every evidence item has an id. Base every statement on that evidence.\n\n"
        "STRICT OUTPUT FORMAT:\n"
        "Return ONE valid JSON object ONLY.\n"
        "- No code fences\n"
        "- No Markdown\n"
        "- No extra commentary\n\n"
        f"JSON FIELDS (ALL REQUIRED):\n{REPORT_JSON_SHAPE}\n\n"
        "CARDINALITY:\n"
        "- top_questions: exactly 5 items\n"
        "- tailored_questions_for_interviewer: 3 to 5 items\n"
        "- every confidence is a number between 0 and 1\n\n"
        "CITATION RULES:\n"
        f"{scope_lines}\n"
        "- Never cite an id from another partition and never invent ids.\n"
        "- DO NOT invent facts. Only use public, professional information about the interviewer.\n"
        f"- If a field has no supporting evidence, write \"{INSUFFICIENT_EVIDENCE}\", leave source_ids empty "
        f"and set confidence to {unsupported_confidence_cap} or lower.\n"
        "- Align questions to the role and, when provided, to the candidate's resume (skills, projects, impact).\n"
        "- Prioritize concision, factuality, and interview usefulness."
    )


def _evidence_lines(bundle: EvidenceBundle) -> Dict[str, List[dict]]:
    # raw provider payloads are never sent to the model
    return {
        name.value: [
            {"id": e.id, "title": e.title, "url": e.url, "snippet": e.snippet}
            for e in evidence
        ]
        for name, evidence in bundle.items()
    }


def generate_synthesis_user_prompt(
    spec: QuerySpec,
    bundle: EvidenceBundle,
    resume_text: Optional[str] = None,
    resume_max_chars: int = 6000,
) -> str:
    """
    User prompt carrying the request entities, optional resume and the evidence partitions.

    Args:
        spec: The query the evidence was gathered for.
        bundle: Aggregated evidence.
        resume_text: Candidate resume text, if one is on file.
        resume_max_chars: Resume truncation limit.

    Returns:
        The formatted user prompt.
    """
    inputs = {
        "company_name": spec.company,
        "role": spec.role,
        "job_link": spec.job_link,
        "interviewer_linkedin_url": spec.interviewer_linkedin_url,
    }
    parts = [
        "INPUTS:",
        json.dumps(inputs, indent=2),
    ]
    if resume_text:
        parts += ["", "RESUME_TEXT:", resume_text[:resume_max_chars]]
    parts += [
        "",
        "EVIDENCE (grouped by partition):",
        json.dumps(_evidence_lines(bundle), indent=2),
        "",
        "Write the interview preparation report as one JSON object.",
    ]
    return "\n".join(parts)


def generate_retry_prompt(user_prompt: str, error: str) -> str:
    """Re-ask after output failed validation, feeding the error back."""
    return (
        f"{user_prompt}\n\n"
        "Your previous answer was rejected because it did not match the required JSON format:\n"
        f"{error[:2000]}\n\n"
        "Return ONLY the corrected JSON object."
    )


ANSWER_FEEDBACK_JSON_SHAPE = """{
  "score": integer (1-5),
  "strengths": string[],
  "weaknesses": string[],
  "feedback": string
}"""


def generate_feedback_system_prompt() -> str:
    return (
        "You are an interview answer evaluator.\n\n"
        "You will be given the INTERVIEW QUESTION that was asked and the candidate's ANSWER.\n\n"
        "Your tasks:\n"
        "1. Rate the answer's quality from 1 to 5 (1 = very poor or incomplete, 5 = excellent and well structured).\n"
        "2. List the answer's strengths: relevant examples, clarity, technical depth.\n"
        "3. List its weaknesses: gaps, vagueness, missing structure, irrelevant detail.\n"
        "4. Give one short paragraph of constructive feedback in plain language.\n\n"
        "STRICT OUTPUT FORMAT:\n"
        "Return ONE valid JSON object ONLY, with no code fences and no commentary:\n"
        f"{ANSWER_FEEDBACK_JSON_SHAPE}"
    )


def generate_feedback_user_prompt(question: str, answer: str, answer_max_chars: int = 6000) -> str:
    return f"QUESTION:\n{question}\n\nANSWER:\n{answer[:answer_max_chars]}"
