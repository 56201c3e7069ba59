"""Observer system for retry engine events."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any


class RetryEvent(Enum):
    """Events that can be observed while executing a request."""

    ATTEMPT_STARTED = "attempt_started"
    ATTEMPT_SUCCEEDED = "attempt_succeeded"
    ATTEMPT_FAILED = "attempt_failed"
    RETRY_SCHEDULED = "retry_scheduled"
    TIMEOUT = "timeout"
    BUDGET_EXHAUSTED = "budget_exhausted"
    REGION_ROTATED = "region_rotated"
    FALLBACK_ATTEMPT = "fallback_attempt"


class ExecutorObserver(ABC):
    """Abstract base class for retry event observers."""

    @abstractmethod
    async def on_event(
        self,
        event: RetryEvent,
        data: dict[str, Any],
    ) -> None:
        """
        Handle retry event.

        Args:
            event: The event type
            data: Event-specific data
        """
        pass


class BaseObserver(ExecutorObserver):
    """Base observer with no-op implementation."""

    async def on_event(
        self,
        event: RetryEvent,
        data: dict[str, Any],
    ) -> None:
        """Default: do nothing."""
        pass
