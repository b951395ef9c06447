"""
Interview Research Package

Architecture:
- search_client.py: Web search provider (Gemini Google Search grounding)
- adapters.py: Company, question, interviewer and LeetCode source adapters
- normalizer.py: Raw provider records -> Evidence
- timed_fetch.py: Per-call deadlines
- orchestrator.py: Concurrent aggregation into an Evidence Bundle
- cache.py: Optional TTL cache of aggregated evidence
- fallback.py: Example report for incomplete requests
- synthesis.py: Evidence Bundle -> InterviewReport, with the citation gate
- llm_parser.py: LLM output cleanup and schema validation
- resume.py: Resume text lookup by session
- feedback.py: Practice answer scoring
- interview_pipeline.py: End-to-end report pipeline
- rate_limiter.py: Provider RPM limits and retries
"""

from .interview_pipeline import InterviewPipeline, PipelineResult
from .orchestrator import ResearchOrchestrator
from .synthesis import SynthesisService, enforce_citations
from .fallback import FallbackPolicy
from .feedback import AnswerFeedbackService

__all__ = [
    'InterviewPipeline',
    'PipelineResult',
    'ResearchOrchestrator',
    'SynthesisService',
    'enforce_citations',
    'FallbackPolicy',
    'AnswerFeedbackService',
]
