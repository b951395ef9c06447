import asyncio
import time

import pytest

from app.core.exceptions import PipelineTimeoutError
from app.services.research.timed_fetch import with_deadline


async def _slow(value, delay_s):
    await asyncio.sleep(delay_s)
    return value


@pytest.mark.asyncio
async def test_returns_result_before_deadline():
    assert await with_deadline(_slow("ok", 0.01), 1000) == "ok"


@pytest.mark.asyncio
async def test_times_out_near_the_deadline():
    """
    WHY: Callers must get control back once the deadline passes.
    HOW: Wrap a 1s operation in a 50ms deadline and time the call.
    EXPECTED: PipelineTimeoutError after roughly 50ms, well before the operation finishes.
    """
    start = time.perf_counter()
    with pytest.raises(PipelineTimeoutError) as exc_info:
        await with_deadline(_slow("late", 1.0), 50, label="slow op")
    elapsed_ms = (time.perf_counter() - start) * 1000

    assert 45 <= elapsed_ms < 300
    assert exc_info.value.timeout_ms == 50
    assert isinstance(exc_info.value, TimeoutError)


@pytest.mark.asyncio
async def test_operation_is_not_cancelled_after_timeout():
    """
    WHY: The deadline stops waiting; it does not cancel the underlying work.
    HOW: Time out a short operation, then wait for it to finish on its own.
    EXPECTED: The operation still completes and its result is discarded.
    """
    finished = asyncio.Event()

    async def operation():
        await asyncio.sleep(0.05)
        finished.set()
        return "discarded"

    with pytest.raises(PipelineTimeoutError):
        await with_deadline(operation(), 10)

    await asyncio.wait_for(finished.wait(), timeout=1)
    assert finished.is_set()


@pytest.mark.asyncio
async def test_operation_errors_propagate_unchanged():
    async def failing():
        raise RuntimeError("provider down")

    with pytest.raises(RuntimeError, match="provider down"):
        await with_deadline(failing(), 1000)


@pytest.mark.asyncio
async def test_non_positive_timeout_is_rejected():
    operation = _slow("x", 0)
    with pytest.raises(ValueError):
        await with_deadline(operation, 0)
    operation.close()
