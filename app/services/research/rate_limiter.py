"""
Provider call guard: per-provider RPM windows plus tenacity retries.

Every outbound search or summarization call goes through ``safe_api_call``,
which waits for a slot in the provider's window, runs the call, and retries
transient google.api_core failures. A quota rejection also puts the provider
in a cool-down so concurrent adapters stop hammering it.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Awaitable, Callable, Deque, Dict, Optional

from google.api_core.exceptions import (
    InternalServerError,
    ResourceExhausted,
    ServiceUnavailable,
    TooManyRequests,
)
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.core.config import settings

logger = logging.getLogger(__name__)

RETRYABLE_EXCEPTIONS = (ResourceExhausted, TooManyRequests, ServiceUnavailable, InternalServerError)
QUOTA_EXCEPTIONS = (ResourceExhausted, TooManyRequests)

WINDOW_SECONDS = 60.0


@dataclass
class _ProviderWindow:
    rpm: int
    calls: Deque[float] = field(default_factory=deque)
    cooldown_until: float = 0.0

    def seconds_until_free(self, now: float) -> float:
        """0 when a call may start now; otherwise how long to wait."""
        if now < self.cooldown_until:
            return self.cooldown_until - now
        while self.calls and self.calls[0] <= now - WINDOW_SECONDS:
            self.calls.popleft()
        if len(self.calls) >= self.rpm:
            return self.calls[0] + WINDOW_SECONDS - now
        return 0.0


class ServiceRateLimiter:
    """
    Requests-per-minute limiter keyed by provider name ('gemini', 'groq', ...).
    Counting and waiting only; retries live in ``safe_api_call``.
    """

    def __init__(self, limits: Optional[Dict[str, int]] = None):
        self._limits = limits or {
            'gemini': settings.GEMINI_RPM,
            'groq': settings.GROQ_RPM,
            'default': settings.REQUESTS_PER_MINUTE,
        }
        self._windows: Dict[str, _ProviderWindow] = {}
        self._lock = asyncio.Lock()

    def _window(self, service: str) -> _ProviderWindow:
        if service not in self._windows:
            rpm = self._limits.get(service, self._limits['default'])
            self._windows[service] = _ProviderWindow(rpm=rpm)
        return self._windows[service]

    async def acquire_slot(self, service: str) -> None:
        """Wait until ``service`` has room in its window, then record the call."""
        while True:
            async with self._lock:
                window = self._window(service)
                now = time.monotonic()
                delay = window.seconds_until_free(now)
                if delay <= 0:
                    window.calls.append(now)
                    return
            logger.info(f"[{service}] Rate limited locally, waiting {delay:.2f}s")
            # Sleep without holding the lock so other providers are not blocked
            await asyncio.sleep(delay)

    async def block_service(self, service: str, seconds: float) -> None:
        """Cool-down after the provider rejected us for quota."""
        async with self._lock:
            window = self._window(service)
            window.cooldown_until = max(window.cooldown_until, time.monotonic() + seconds)
        logger.warning(f"[{service}] Quota rejection, pausing calls for {seconds:.1f}s")


def parse_retry_after(exception: BaseException) -> float:
    """Seconds the server asked us to wait, or 0.0 when it gave no usable hint."""
    try:
        response = getattr(exception, 'response', None)
        headers = getattr(response, 'headers', None) or {}
        retry_after = headers.get('Retry-After') or headers.get('retry-after')
        if retry_after:
            if retry_after.isdigit():
                return float(retry_after)
            when = parsedate_to_datetime(retry_after)
            return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())

        metadata = getattr(exception, 'metadata', None)
        if isinstance(metadata, dict) and metadata.get('retry-after-ms'):
            return float(metadata['retry-after-ms']) / 1000.0
    except (TypeError, ValueError):
        logger.debug(f"Ignoring malformed retry hint on {type(exception).__name__}")
    return 0.0


def custom_wait_generator(retry_state: RetryCallState) -> float:
    """Honour the server's hint when there is one, else back off exponentially."""
    hinted = parse_retry_after(retry_state.outcome.exception())
    if hinted > 0:
        return min(hinted, settings.RETRY_MAX_DELAY)
    backoff = wait_exponential(multiplier=settings.RETRY_BASE_DELAY, max=settings.RETRY_MAX_DELAY)
    return backoff(retry_state)


async def safe_api_call(
    func: Callable[..., Awaitable[Any]],
    *args,
    service: str = 'default',
    limiter: Optional[ServiceRateLimiter] = None,
    **kwargs
) -> Any:
    """Run one provider call under the provider's RPM window, retrying transient errors."""
    limiter = limiter or rate_limiter
    retrying = AsyncRetrying(
        stop=stop_after_attempt(settings.RETRY_MAX_ATTEMPTS),
        wait=custom_wait_generator,
        retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
        before_sleep=before_sleep_log(logger, logging.INFO),
        reraise=True,
    )

    async for attempt in retrying:
        with attempt:
            await limiter.acquire_slot(service)
            try:
                return await func(*args, **kwargs)
            except QUOTA_EXCEPTIONS as e:
                await limiter.block_service(service, parse_retry_after(e) or settings.RETRY_MIN_QUOTA_DELAY)
                raise


# Shared by every provider client in the process
rate_limiter = ServiceRateLimiter()
