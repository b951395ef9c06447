from fastapi import Request

from app.services.research.feedback import AnswerFeedbackService
from app.services.research.interview_pipeline import InterviewPipeline
from app.services.research.orchestrator import ResearchOrchestrator
from app.services.research.resume import InMemoryResumeStore


def get_pipeline(request: Request) -> InterviewPipeline:
    """The interview pipeline built by the application lifespan."""
    return request.app.state.pipeline


def get_orchestrator(request: Request) -> ResearchOrchestrator:
    return request.app.state.orchestrator


def get_resume_store(request: Request) -> InMemoryResumeStore:
    return request.app.state.resume_store


def get_feedback_service(request: Request) -> AnswerFeedbackService:
    return request.app.state.feedback
