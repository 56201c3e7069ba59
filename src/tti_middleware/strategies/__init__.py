"""Retry strategies: error classification and delay computation."""

from .backoff import (
    TIMEOUT_RETRY_DELAY_MS,
    DelayStrategy,
    ExponentialBackoffStrategy,
    calculate_retry_delay,
)
from .errors import (
    DefaultErrorClassifier,
    ErrorClassification,
    ErrorClassifier,
    OperationTimeoutError,
)

__all__ = [
    "ErrorClassifier",
    "ErrorClassification",
    "DefaultErrorClassifier",
    "OperationTimeoutError",
    "DelayStrategy",
    "ExponentialBackoffStrategy",
    "TIMEOUT_RETRY_DELAY_MS",
    "calculate_retry_delay",
]
