"""Delay strategies between retry attempts."""

import logging
import random
from abc import ABC, abstractmethod

from ..core.config import RetryConfig

logger = logging.getLogger(__name__)

# Timeout-triggered retries never back off exponentially
TIMEOUT_RETRY_DELAY_MS = 2000


class DelayStrategy(ABC):
    """Strategy for computing how long to wait before the next attempt."""

    @abstractmethod
    def retry_delay(self, attempt: int, config: RetryConfig) -> int:
        """
        Delay before a general (server, network or quota) retry.

        Args:
            attempt: 1-based count of general retries so far
            config: Resolved retry policy

        Returns:
            Delay in milliseconds
        """
        ...

    @abstractmethod
    def timeout_delay(self, attempt: int, config: RetryConfig) -> int:
        """Delay in milliseconds before a retry caused by a guard timeout."""
        ...


class ExponentialBackoffStrategy(DelayStrategy):
    """Capped exponential backoff with optional full jitter."""

    def __init__(self, rng: random.Random | None = None):
        """
        Initialize exponential backoff strategy.

        Args:
            rng: Random source for jitter (a fresh random.Random by default)
        """
        self.rng = rng or random.Random()

    def base_delay(self, attempt: int, config: RetryConfig) -> float:
        """Deterministic capped delay for ``attempt``, before jitter."""
        if attempt < 1:
            raise ValueError(f"attempt must be >= 1 (got {attempt})")
        return min(
            config.delay_ms * (config.backoff_multiplier ** (attempt - 1)),
            config.max_delay_ms,
        )

    def retry_delay(self, attempt: int, config: RetryConfig) -> int:
        """Calculate exponential backoff delay, uniformly jittered in [0, delay]."""
        delay = self.base_delay(attempt, config)
        if config.jitter:
            return self.rng.randint(0, int(delay))
        return round(delay)

    def timeout_delay(self, attempt: int, config: RetryConfig) -> int:
        """Return the fixed timeout retry delay."""
        return TIMEOUT_RETRY_DELAY_MS


def calculate_retry_delay(attempt: int, config: RetryConfig) -> int:
    """Compute the delay for the ``attempt``-th general retry with the default strategy."""
    return _default_strategy.retry_delay(attempt, config)


_default_strategy = ExponentialBackoffStrategy()
