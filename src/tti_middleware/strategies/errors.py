"""Error classification for retry decisions."""

import logging
from abc import ABC, abstractmethod
from enum import Enum

# Error pattern constants, matched case-insensitively against the error text
NON_RETRYABLE_PATTERNS = ("400", "401", "403", "authentication", "unauthorized", "forbidden")
QUOTA_PATTERNS = ("429", "resource exhausted", "quota exceeded", "too many requests", "rate limit")
SERVER_ERROR_PATTERNS = ("408", "500", "502", "503", "504")
NETWORK_ERROR_PATTERNS = (
    "timeout",
    "etimedout",
    "esockettimedout",
    "econnreset",
    "econnrefused",
    "enotfound",
    "econnaborted",
    "epipe",
    "ehostunreach",
    "enetunreach",
    "socket hang up",
)


class ErrorClassification(Enum):
    """How the retry engine should treat a failed attempt."""

    NON_RETRYABLE = "non_retryable"
    RETRYABLE = "retryable"
    TIMEOUT = "timeout"
    QUOTA = "quota"


class OperationTimeoutError(TimeoutError):
    """
    Deadline enforced by the retry engine's timeout guard.

    This is distinguished from timeouts reported by the backend itself:
    it always classifies as TIMEOUT and draws on the separate timeout budget,
    whereas a backend "504 timeout" message is an ordinary retryable error.
    """

    def __init__(self, operation_name: str, timeout_ms: int):
        self.operation_name = operation_name
        self.timeout_ms = timeout_ms
        super().__init__(f"Timeout: {operation_name} exceeded {timeout_ms}ms")


class ErrorClassifier(ABC):
    """Abstract base class for classifying backend errors."""

    @abstractmethod
    def classify(self, exception: BaseException) -> ErrorClassification:
        """
        Classify an exception and determine handling strategy.

        Args:
            exception: The exception to classify

        Returns:
            The ErrorClassification that decides which budget (if any) is used
        """
        pass


class DefaultErrorClassifier(ErrorClassifier):
    """Classifier driven by substrings of the error message.

    Rules are applied in order and the first match wins: authentication and
    bad-request markers, then quota markers, then server and network markers.
    Anything unrecognised fails fast.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(__name__)

    def _matches_any_pattern(self, error_str: str, patterns: tuple[str, ...]) -> bool:
        """Check if error string matches any of the given patterns (case-insensitive)."""
        error_lower = error_str.lower()
        return any(pattern in error_lower for pattern in patterns)

    def classify(self, exception: BaseException) -> ErrorClassification:
        """Classify by type for guard timeouts, otherwise by message text."""
        if isinstance(exception, OperationTimeoutError):
            return ErrorClassification.TIMEOUT

        error_str = str(exception)

        if self._matches_any_pattern(error_str, NON_RETRYABLE_PATTERNS):
            classification = ErrorClassification.NON_RETRYABLE
        elif self._matches_any_pattern(error_str, QUOTA_PATTERNS):
            classification = ErrorClassification.QUOTA
        elif self._matches_any_pattern(error_str, SERVER_ERROR_PATTERNS + NETWORK_ERROR_PATTERNS):
            classification = ErrorClassification.RETRYABLE
        else:
            # Unknown errors are not retried
            classification = ErrorClassification.NON_RETRYABLE

        self.logger.debug(
            f"Classified {type(exception).__name__} as {classification.value}: {error_str[:150]}"
        )
        return classification
