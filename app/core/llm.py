"""
Provider client construction.

This module provides factories for:
- the GenAI SDK client used for Google Search grounded web search
- the ChatGroq chat model used for report synthesis

Clients are built once by the application lifespan and injected into the
research services; nothing here keeps module-level state.
"""
import logging

from google import genai
from langchain_groq import ChatGroq

from app.core.config import Settings
from app.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def build_genai_client(settings: Settings) -> genai.Client:
    """Create the GenAI SDK client for web search. Fails fast without an API key."""
    if not settings.GEMINI_API_KEY:
        raise ConfigurationError("GEMINI_API_KEY is not set", details={"provider": "gemini"})
    try:
        return genai.Client(api_key=settings.GEMINI_API_KEY)
    except Exception as e:
        logger.error(f"Failed to initialize GenAI client: {e}")
        raise ConfigurationError("Failed to initialize GenAI client", details={"provider": "gemini"}) from e


def build_synthesis_model(settings: Settings) -> ChatGroq:
    """Create the ChatGroq model that writes the interview report."""
    if not settings.GROQ_API_KEY:
        raise ConfigurationError("GROQ_API_KEY is not set", details={"provider": "groq"})
    return ChatGroq(
        model=settings.SYNTHESIS_MODEL,
        temperature=settings.SYNTHESIS_TEMPERATURE,
        api_key=settings.GROQ_API_KEY,
        max_tokens=settings.SYNTHESIS_MAX_TOKENS,
    )
