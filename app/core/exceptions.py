"""
Custom exceptions for the interview research service.

This module defines the error taxonomy of the research pipeline and the
FastAPI handlers that turn each error class into an HTTP response of the
form ``{"error": str, "details"?: str}``.
"""
import logging
from typing import Optional
from fastapi import Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# ============================================================================
# Custom Exception Classes
# ============================================================================

class AppError(Exception):
    """Base exception for all application errors."""
    status_code = 500
    public_message = "Internal Server Error"

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class MissingInputError(AppError):
    """A required identifying field (company, role, interviewer URL) is absent."""
    status_code = 400

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"Missing required input: {field}", details={"field": field})


class PipelineTimeoutError(AppError, TimeoutError):
    """An adapter or the whole pipeline exceeded its deadline."""
    status_code = 504
    public_message = "The search timed out before completing."

    def __init__(self, message: str, timeout_ms: Optional[int] = None, details: Optional[dict] = None):
        self.timeout_ms = timeout_ms
        super().__init__(message, details=details)


class UpstreamError(AppError):
    """The search or summarization provider itself failed."""
    public_message = "Error calling an upstream research provider."

    def __init__(self, provider: str, message: str, details: Optional[dict] = None):
        self.provider = provider
        super().__init__(message, details=details)


class SynthesisFormatError(AppError):
    """Summarizer output failed to parse or validate against the report schema."""
    public_message = "The report could not be generated in the expected format."


class FeedbackFormatError(SynthesisFormatError):
    """Evaluator output failed to parse or validate against the feedback schema."""
    public_message = "The answer feedback could not be generated in the expected format."


class ConfigurationError(AppError):
    """Exception raised when configuration is invalid or missing."""
    public_message = "The research service is not configured."


# ============================================================================
# FastAPI Exception Handlers
# ============================================================================

def _error_body(error: str, details: Optional[str] = None) -> dict:
    body = {"error": error}
    if details:
        body["details"] = details
    return body


async def app_error_handler(request: Request, exc: AppError):
    if isinstance(exc, MissingInputError):
        logger.warning(f"Rejected request: {exc.message}")
        return JSONResponse(status_code=400, content=_error_body(exc.message, exc.field))

    if isinstance(exc, PipelineTimeoutError):
        logger.warning(f"Deadline exceeded: {exc.message}")
        return JSONResponse(status_code=504, content=_error_body(exc.public_message, exc.message))

    # Provider and internal failures are logged in full but redacted for callers
    logger.error(f"{type(exc).__name__}: {exc.message} {exc.details}", exc_info=exc)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.public_message))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Invalid request body: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content=_error_body("Invalid request body.", str(exc.errors())),
    )


async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=_error_body("Internal Server Error"),
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    logger.warning(f"HTTP exception: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail)),
    )
