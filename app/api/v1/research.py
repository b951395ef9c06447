import logging
import uuid
from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Cookie, Depends, Response
from pydantic import BaseModel, Field

from app.api.deps import get_feedback_service, get_orchestrator, get_pipeline, get_resume_store
from app.core.config import settings
from app.schemas.feedback import AnswerFeedback, AnswerFeedbackRequest
from app.schemas.report import InterviewReport
from app.schemas.research import ResearchRequest, SourceSearchResponse
from app.services.research.feedback import AnswerFeedbackService
from app.services.research.interview_pipeline import InterviewPipeline
from app.services.research.orchestrator import ResearchOrchestrator
from app.services.research.resume import InMemoryResumeStore

logger = logging.getLogger(__name__)

research_router = APIRouter()

SourceName = Literal["company", "questions", "interviewer", "leetcode"]


class ResumeTextRequest(BaseModel):
    text: str = Field(..., min_length=1, description="Plain resume text for the current session.")


@research_router.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@research_router.post("/interview-report", response_model=InterviewReport)
async def create_interview_report(
    body: ResearchRequest,
    response: Response,
    session_id: Optional[str] = Cookie(default=None, alias=settings.SESSION_COOKIE_NAME),
    pipeline: InterviewPipeline = Depends(get_pipeline),
):
    """
    Build an interview preparation report.

    Requests missing company, role or a usable interviewer URL receive the
    static example report; ``X-Report-Source`` tells the two apart.
    """
    result = await pipeline.run(body.to_query_spec(), session_id=session_id)
    response.headers["X-Report-Source"] = result.source
    return result.report


@research_router.post("/research/bundle")
async def research_bundle(
    body: ResearchRequest,
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """Aggregated evidence for all report sources, without synthesis."""
    bundle = await orchestrator.aggregate(body.to_query_spec())
    return bundle.to_wire()


@research_router.post("/research/{source}", response_model=SourceSearchResponse)
async def research_source(
    source: SourceName,
    body: ResearchRequest,
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
):
    """Run one source adapter and return its objective, queries and evidence."""
    return await orchestrator.search_source(source, body.to_query_spec())


@research_router.post("/resume", status_code=204)
async def store_resume_text(
    body: ResumeTextRequest,
    response: Response,
    session_id: Optional[str] = Cookie(default=None, alias=settings.SESSION_COOKIE_NAME),
    store: InMemoryResumeStore = Depends(get_resume_store),
):
    """Keep resume text for this session so later reports can use it."""
    session_id = session_id or uuid.uuid4().hex
    await store.put(session_id, body.text)
    response.set_cookie(settings.SESSION_COOKIE_NAME, session_id, httponly=True, samesite="lax")


@research_router.post("/answer-feedback", response_model=AnswerFeedback)
async def answer_feedback(
    body: AnswerFeedbackRequest,
    service: AnswerFeedbackService = Depends(get_feedback_service),
):
    """Score a practice answer from 1 to 5 with strengths, weaknesses and feedback."""
    return await service.evaluate(body.question, body.answer)
