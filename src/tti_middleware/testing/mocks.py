"""Mock operations for testing the retry engine."""

import asyncio
from collections.abc import Callable, Iterable
from typing import Any

# Sentinel outcome: the attempt never settles
HANG = object()


class ScriptedOperation:
    """
    Async operation whose outcomes follow a script.

    Each call consumes the next outcome: an exception instance is raised,
    HANG blocks forever, and anything else is returned. When the script runs
    out, the last outcome repeats.
    """

    def __init__(
        self,
        outcomes: Iterable[Any],
        latency: float = 0.0,
        response_factory: Callable[[int, str | None], Any] | None = None,
    ):
        """
        Initialize scripted operation.

        Args:
            outcomes: Outcomes in call order
            latency: Simulated latency in seconds before each outcome
            response_factory: Optional factory(call_number, region) used for
                outcomes that are None
        """
        self.outcomes = list(outcomes)
        if not self.outcomes:
            raise ValueError("outcomes must contain at least one entry")
        self.latency = latency
        self.response_factory = response_factory
        self.call_count = 0
        self.regions: list[str | None] = []
        self.completed: list[Any] = []

    def _next_outcome(self) -> Any:
        index = min(self.call_count, len(self.outcomes)) - 1
        return self.outcomes[index]

    async def __call__(self, region: str | None = None) -> Any:
        """Run one attempt, optionally bound to ``region``."""
        self.call_count += 1
        self.regions.append(region)
        outcome = self._next_outcome()

        if self.latency:
            await asyncio.sleep(self.latency)

        if outcome is HANG:
            await asyncio.Event().wait()

        if isinstance(outcome, BaseException):
            raise outcome

        if outcome is None and self.response_factory is not None:
            outcome = self.response_factory(self.call_count, region)
        self.completed.append(outcome)
        return outcome


class RecordingSleep:
    """Drop-in replacement for asyncio.sleep that records delays instead of waiting."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def calls_ms(self) -> list[int]:
        """Recorded delays in milliseconds."""
        return [round(seconds * 1000) for seconds in self.calls]
