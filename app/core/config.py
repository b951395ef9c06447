from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path
from dotenv import load_dotenv


# Resolve the .env file relative to the project root (two levels up from app/core)
CONFIG_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = CONFIG_DIR.parent.parent
ENV_FILE_PATH = PROJECT_ROOT / '.env'

# Load environment variables from .env file
load_dotenv(ENV_FILE_PATH)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE_PATH),
        env_file_encoding='utf-8',
        extra='ignore'
    )

    DEBUG_MODE: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    GEMINI_API_KEY: str = ""
    GROQ_API_KEY: str = ""

    # Models
    GEMINI_MODEL: str = "gemini-2.5-flash"  # Web search (Google Search grounding)
    SYNTHESIS_MODEL: str = "openai/gpt-oss-120b"  # Report synthesis via Groq
    SYNTHESIS_TEMPERATURE: float = 0.2
    SYNTHESIS_MAX_TOKENS: int = 4096

    # Service Specific Limits (Requests Per Minute)
    GEMINI_RPM: int = 15
    GROQ_RPM: int = 60
    REQUESTS_PER_MINUTE: int = 30

    # Retry Configuration
    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_BASE_DELAY: float = 1.0
    RETRY_MAX_DELAY: float = 60.0
    RETRY_MIN_QUOTA_DELAY: float = 5.0

    # Search Budgets
    DEFAULT_TIMEOUT_MS: int = 15000  # Per-adapter deadline when the request omits timeout_ms
    MAX_CHARS_PER_RESULT: int = 6000
    MAX_COST_USD: float = 0.25
    SEARCH_COST_PER_1K_TOKENS_USD: float = 0.0025  # Used to turn the cost ceiling into an output token budget
    SNIPPET_MAX_CHARS: int = 280

    # Pipeline Configuration
    PIPELINE_TIMEOUT_MS: int = 90000  # Whole request: aggregation + synthesis
    SYNTHESIS_MAX_RETRIES: int = 1  # Extra attempts after a malformed summarizer response
    UNSUPPORTED_CONFIDENCE_CAP: float = 0.4
    RESUME_MAX_CHARS: int = 6000

    # Resume text per session; idle sessions expire and the oldest are evicted first
    RESUME_SESSION_TTL_SECONDS: int = 3600
    RESUME_SESSION_MAX_ENTRIES: int = 1024

    # Evidence Cache (idempotency for repeated identical queries)
    EVIDENCE_CACHE_ENABLED: bool = False
    EVIDENCE_CACHE_TTL_SECONDS: int = 600
    EVIDENCE_CACHE_MAX_ENTRIES: int = 256

    # Session cookie carrying the resume lookup key
    SESSION_COOKIE_NAME: str = "aii_session"


# Initialize settings
settings = Settings()
