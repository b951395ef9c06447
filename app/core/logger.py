"""
Logging setup for the research service.

One package logger ("app") carries two handlers: coloured console output and
a rotating file under ``logs/`` (plain text or JSON lines). Every record gets
the current run's correlation id, and provider keys are masked before any
handler writes them.
"""
import json
import logging
import re
import sys
import time
from contextvars import ContextVar
from functools import wraps
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Optional

# Per-run correlation id, set by the interview pipeline
correlation_id_var: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)

MASK = '***MASKED***'

# Provider keys and auth headers that can surface in SDK error messages
SECRET_PATTERNS = [
    (re.compile(r'(api[_-]?key\s*[=:]\s*)["\']?[\w-]{20,}["\']?', re.IGNORECASE), rf'\1{MASK}'),
    (re.compile(r'AIza[\w-]{20,}'), MASK),  # Google / Gemini
    (re.compile(r'gsk_[\w-]{20,}'), MASK),  # Groq
    (re.compile(r'((?:bearer|authorization[=:]?)\s*)[\w.-]{20,}', re.IGNORECASE), rf'\1{MASK}'),
]

LOG_FORMAT = "%(asctime)s - [%(correlation_id)s] - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

BASE_DIR = Path(__file__).resolve().parent.parent.parent
LOGS_DIR = BASE_DIR / "logs"
LOG_FILE_NAME = "app.log"


def mask_secrets(text: str) -> str:
    for pattern, replacement in SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class SecretMaskingFilter(logging.Filter):
    """Rewrites the formatted message with secrets masked."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = mask_secrets(message)
        if masked != message:
            record.msg, record.args = masked, None
        return True


class CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "N/A"
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line; ``extra={"extra_data": {...}}`` fields are merged in."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "correlation_id": getattr(record, 'correlation_id', 'N/A'),
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        entry.update(getattr(record, 'extra_data', None) or {})
        return json.dumps(entry, default=str)


class ColorFormatter(logging.Formatter):
    """Console formatter that colours the whole line by level."""

    RESET = "\x1b[0m"
    LEVEL_COLORS = {
        logging.DEBUG: "\x1b[38;20m",
        logging.INFO: "\x1b[38;20m",
        logging.WARNING: "\x1b[33;20m",
        logging.ERROR: "\x1b[31;20m",
        logging.CRITICAL: "\x1b[31;1m",
    }

    def __init__(self):
        super().__init__(LOG_FORMAT, datefmt=DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        return f"{color}{super().format(record)}{self.RESET}"


def _file_handler(log_dir: Path, clear_log: bool, use_json: bool) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME
    if clear_log and log_file.exists():
        log_file.write_text("")

    # 5MB per file, 5 rotations
    handler = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8")
    handler.setFormatter(JsonFormatter(datefmt=DATE_FORMAT) if use_json else logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logger(
    name: str = "app",
    log_level: str | int = logging.INFO,
    clear_log: bool = False,
    use_json: bool = False,
    mask_secrets: bool = True,
    log_dir: Path = LOGS_DIR,
) -> logging.Logger:
    """
    Configure the package logger once.

    Module loggers (``logging.getLogger(__name__)`` under ``app.*``) propagate
    here, so handlers are attached only to this logger.

    Args:
        name: Logger name, normally the package root
        log_level: Level name ("INFO") or number
        clear_log: Truncate the log file first
        use_json: JSON lines in the log file instead of plain text
        mask_secrets: Mask API keys and bearer tokens
        log_dir: Directory for the log file and its rotations
    """
    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    # uvicorn --reload and test sessions call this more than once
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ColorFormatter())

    for handler in (console_handler, _file_handler(log_dir, clear_log, use_json)):
        handler.addFilter(CorrelationIdFilter())
        if mask_secrets:
            handler.addFilter(SecretMaskingFilter())
        logger.addHandler(handler)

    for chatty in ("httpx", "httpcore", "google_genai"):
        logging.getLogger(chatty).setLevel(logging.WARNING)

    return logger


def set_correlation_id(correlation_id: str):
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    return correlation_id_var.get()


logger = logging.getLogger(__name__)


def log_async_execution_time(func: Callable[..., Any]) -> Callable[..., Any]:
    """Log how long an async stage took, including when it fails."""
    @wraps(func)
    async def wrapper(*args, **kwargs):
        started = time.perf_counter()
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            logger.error(f"{func.__qualname__} failed after {time.perf_counter() - started:.4f}s: {e}")
            raise
        logger.info(f"{func.__qualname__} finished in {time.perf_counter() - started:.4f}s")
        return result
    return wrapper
