"""
Deadline wrapper for slow provider calls.

``with_deadline`` stops *waiting* for an operation once its deadline passes;
it does not cancel it. Provider SDK calls run on worker threads that cannot
be interrupted anyway, so the late result is simply discarded. Releasing
sockets held by a timed-out call is the provider client's job.
"""
import asyncio
import logging
from typing import Awaitable, TypeVar

from app.core.exceptions import PipelineTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _discard_late_result(label: str):
    def callback(task: asyncio.Future) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.info(f"[{label}] Late failure after deadline discarded: {type(exc).__name__}")
        else:
            logger.info(f"[{label}] Late result after deadline discarded")
    return callback


async def with_deadline(operation: Awaitable[T], timeout_ms: int, label: str = "operation") -> T:
    """
    Await ``operation`` for at most ``timeout_ms`` milliseconds.

    Returns the operation's result, re-raises its own exception, or raises
    PipelineTimeoutError when the deadline elapses first.
    """
    if timeout_ms <= 0:
        raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")

    task = asyncio.ensure_future(operation)
    done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000)

    if task in done:
        return task.result()

    logger.warning(f"[{label}] Deadline of {timeout_ms}ms exceeded; no longer waiting")
    task.add_done_callback(_discard_late_result(label))
    raise PipelineTimeoutError(f"{label} timed out after {timeout_ms}ms", timeout_ms=timeout_ms)
