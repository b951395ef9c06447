import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.research import research_router
from app.core.config import Settings, settings
from app.core.exceptions import (
    AppError,
    app_error_handler,
    global_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from app.core.llm import build_genai_client, build_synthesis_model
from app.core.logger import setup_logger
from app.services.research.cache import EvidenceCache
from app.services.research.feedback import AnswerFeedbackService
from app.services.research.fallback import FallbackPolicy
from app.services.research.interview_pipeline import InterviewPipeline
from app.services.research.orchestrator import ResearchOrchestrator
from app.services.research.resume import InMemoryResumeStore
from app.services.research.search_client import GeminiSearchClient, SearchProvider
from app.services.research.synthesis import GroqSummarizer, Summarizer, SynthesisService

# Setup logger with fresh log file on startup
setup_logger(log_level=settings.LOG_LEVEL, clear_log=True, use_json=settings.LOG_JSON)
logger = logging.getLogger(__name__)


def wire_services(
    app: FastAPI,
    search_client: SearchProvider,
    summarizer: Summarizer,
    config: Settings = settings,
    resume_store: Optional[InMemoryResumeStore] = None,
) -> None:
    """Build the research services once and attach them to ``app.state``."""
    cache = None
    if config.EVIDENCE_CACHE_ENABLED:
        cache = EvidenceCache(maxsize=config.EVIDENCE_CACHE_MAX_ENTRIES, ttl=config.EVIDENCE_CACHE_TTL_SECONDS)
        logger.info(f"Evidence cache enabled (ttl={config.EVIDENCE_CACHE_TTL_SECONDS}s)")

    orchestrator = ResearchOrchestrator(search_client, cache=cache)
    resume_store = resume_store or InMemoryResumeStore(
        maxsize=config.RESUME_SESSION_MAX_ENTRIES, ttl=config.RESUME_SESSION_TTL_SECONDS
    )

    app.state.orchestrator = orchestrator
    app.state.resume_store = resume_store
    app.state.feedback = AnswerFeedbackService(summarizer, config)
    app.state.pipeline = InterviewPipeline(
        orchestrator=orchestrator,
        synthesis=SynthesisService(summarizer, config),
        fallback=FallbackPolicy(),
        resume_provider=resume_store,
        settings=config,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup: Interview Prep Research Service")
    search_client = GeminiSearchClient.from_settings(build_genai_client(settings), settings)
    summarizer = GroqSummarizer(build_synthesis_model(settings))
    wire_services(app, search_client, summarizer)
    yield
    logger.info("Application shutdown")


app = FastAPI(
    title="Interview Prep Research",
    description="Aggregates web evidence about a company, its interview questions and an interviewer into a cited report.",
    version="1.0.0",
    debug=settings.DEBUG_MODE,
    lifespan=lifespan
)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Report-Source"],
)

app.include_router(research_router, prefix="/api/v1", tags=["research"])
