import asyncio
import logging
from typing import Optional, Protocol

from cachetools import TTLCache

logger = logging.getLogger(__name__)


class ResumeTextProvider(Protocol):
    async def get_resume_text(self, session_id: Optional[str]) -> Optional[str]:
        ...


class InMemoryResumeStore:
    """
    Process-local resume text keyed by session id.
    Bounded: sessions expire after ``ttl`` seconds and the least recently
    stored one is evicted once ``maxsize`` is reached.
    """

    def __init__(self, maxsize: int = 1024, ttl: float = 3600):
        self._texts: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._lock = asyncio.Lock()

    async def put(self, session_id: str, text: str) -> None:
        async with self._lock:
            self._texts[session_id] = text
        logger.info(f"Stored resume text for session ({len(text)} chars, {len(self._texts)} session(s) held)")

    async def get_resume_text(self, session_id: Optional[str]) -> Optional[str]:
        if not session_id:
            return None
        async with self._lock:
            return self._texts.get(session_id)

    def __len__(self) -> int:
        return len(self._texts)
