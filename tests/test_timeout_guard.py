"""Tests for the non-cancelling timeout guard."""

import asyncio
import gc
import time

import pytest

from tti_middleware import OperationTimeoutError, with_timeout
from tti_middleware.timeout import _abandoned


@pytest.mark.asyncio
async def test_fast_operation_passes_through():
    """Test that a result arriving before the deadline is returned."""

    async def operation():
        return "image"

    assert await with_timeout(operation, 1000, "Imagen API call") == "image"


@pytest.mark.asyncio
async def test_fast_failure_passes_through_unchanged():
    """Test that an exception arriving before the deadline is re-raised as is."""
    error = ValueError("503 Service Unavailable")

    async def operation():
        raise error

    with pytest.raises(ValueError) as exc_info:
        await with_timeout(operation, 1000)
    assert exc_info.value is error


@pytest.mark.asyncio
async def test_zero_timeout_disables_guard():
    """Test that a non-positive deadline runs the operation unguarded."""

    async def operation():
        await asyncio.sleep(0.05)
        return "done"

    assert await with_timeout(operation, 0) == "done"


@pytest.mark.asyncio
async def test_slow_operation_times_out():
    """Test the timeout error and its message."""

    async def operation():
        await asyncio.sleep(1)
        return "too late"

    start = time.monotonic()
    with pytest.raises(OperationTimeoutError) as exc_info:
        await with_timeout(operation, 50, "Gemini API call")
    elapsed = time.monotonic() - start

    assert str(exc_info.value) == "Timeout: Gemini API call exceeded 50ms"
    assert elapsed < 0.5


@pytest.mark.asyncio
async def test_abandoned_operation_keeps_running():
    """Test that the timed-out operation is not cancelled and its result is dropped."""
    finished = asyncio.Event()
    cancelled = []

    async def operation():
        try:
            await asyncio.sleep(0.1)
        except asyncio.CancelledError:
            cancelled.append(True)
            raise
        finished.set()
        return "late result"

    with pytest.raises(OperationTimeoutError):
        await with_timeout(operation, 20)

    await asyncio.wait_for(finished.wait(), timeout=1)
    assert cancelled == []


@pytest.mark.asyncio
async def test_late_failure_is_consumed(caplog):
    """Test that an abandoned operation's late exception is logged, not raised."""
    caplog.set_level("DEBUG", logger="tti_middleware.timeout")

    async def operation():
        await asyncio.sleep(0.05)
        raise RuntimeError("late failure")

    with pytest.raises(OperationTimeoutError):
        await with_timeout(operation, 10)

    await asyncio.sleep(0.1)
    assert "late failure" in caplog.text


@pytest.mark.asyncio
async def test_abandoned_operation_survives_garbage_collection():
    """Test that an abandoned operation is strongly held until it settles."""
    loop = asyncio.get_running_loop()
    finished = asyncio.Event()
    release = loop.create_future()
    already_abandoned = set(_abandoned)

    async def operation():
        await release
        finished.set()
        return "late result"

    with pytest.raises(OperationTimeoutError):
        await with_timeout(operation, 10)

    held = _abandoned - already_abandoned
    assert len(held) == 1
    gc.collect()

    loop.call_later(0.05, release.set_result, None)
    await asyncio.wait_for(finished.wait(), timeout=1)
    await asyncio.sleep(0.01)
    assert not held & _abandoned
