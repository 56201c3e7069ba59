"""Deadline guard for backend operations."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from .strategies.errors import OperationTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Strong references to abandoned operations; the event loop only holds weak ones
_abandoned: set["asyncio.Future"] = set()


def _discard_outcome(task: "asyncio.Future") -> None:
    """Consume the late outcome of an abandoned operation."""
    _abandoned.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug(f"Abandoned operation finished with {type(exc).__name__}: {exc}")
    else:
        logger.debug("Abandoned operation finished after its deadline; result discarded")


def _abandon(task: "asyncio.Future") -> None:
    """Keep ``task`` alive until it settles, then drop its outcome."""
    _abandoned.add(task)
    task.add_done_callback(_discard_outcome)


async def with_timeout(
    operation: Callable[[], Awaitable[T]],
    timeout_ms: int,
    operation_name: str = "operation",
) -> T:
    """
    Race ``operation`` against a deadline without cancelling it.

    If the operation settles first its result or exception passes through
    unchanged. Otherwise OperationTimeoutError is raised and the operation
    keeps running in the background; whatever it eventually produces is
    dropped. Unlike asyncio.wait_for, the operation is never cancelled.

    Args:
        operation: Zero-argument coroutine function to run
        timeout_ms: Deadline in milliseconds; <= 0 disables the guard
        operation_name: Name used in the timeout message

    Returns:
        The operation's result

    Raises:
        OperationTimeoutError: If the deadline passes first
    """
    if timeout_ms <= 0:
        return await operation()

    task = asyncio.ensure_future(operation())
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000)
    except asyncio.CancelledError:
        _abandon(task)
        raise
    if task in done:
        return task.result()

    _abandon(task)
    logger.error(f"⏱ TIMEOUT for {operation_name} after {timeout_ms}ms (operation left running)")
    raise OperationTimeoutError(operation_name, timeout_ms)
