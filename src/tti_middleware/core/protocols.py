"""Type aliases and protocols shared across the retry engine."""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, TypeVar

T = TypeVar("T")

# An opaque backend call: no arguments, awaited once per attempt
Operation = Callable[[], Awaitable[T]]

# An operation bound to a region at attempt time
RegionOperation = Callable[[str], Awaitable[T]]

# Observability hook: (error, attempt_number); return value is ignored
OnRetryFunc = Callable[[BaseException, int], Any]

# Injected sleep, takes seconds (asyncio.sleep in production)
SleepFunc = Callable[[float], Awaitable[None]]


class ClientFactory(Protocol):
    """Builds a backend SDK client for one region."""

    def __call__(self, region: str) -> Any:
        """Create the client for ``region``."""
        ...
