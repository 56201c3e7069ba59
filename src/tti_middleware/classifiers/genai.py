"""Error classification from google-genai structured status codes."""

import logging

from ..strategies.errors import (
    DefaultErrorClassifier,
    ErrorClassification,
    ErrorClassifier,
    OperationTimeoutError,
)

try:
    from google.genai.errors import APIError
except ImportError:
    APIError = None  # type: ignore[assignment,misc]

NON_RETRYABLE_CODES = frozenset({400, 401, 403})
QUOTA_CODES = frozenset({429})
RETRYABLE_CODES = frozenset({408, 500, 502, 503, 504})


class GenAIErrorClassifier(ErrorClassifier):
    """Classify google-genai APIError instances by HTTP status code.

    Errors that carry no status code (network failures, wrapped errors,
    anything when google-genai is not installed) are handed to the message
    based DefaultErrorClassifier.
    """

    def __init__(self, fallback: ErrorClassifier | None = None, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(__name__)
        self.fallback = fallback or DefaultErrorClassifier(logger=self.logger)

    def _find_status_code(self, exception: BaseException) -> int | None:
        """Walk the exception chain looking for an APIError status code."""
        if APIError is None:
            return None
        current: BaseException | None = exception
        depth = 0
        while current is not None and depth < 10:
            if isinstance(current, APIError) and isinstance(current.code, int):
                return current.code
            current = current.__cause__
            depth += 1
        return None

    def classify(self, exception: BaseException) -> ErrorClassification:
        """Classify by status code when one is available."""
        if isinstance(exception, OperationTimeoutError):
            return ErrorClassification.TIMEOUT

        code = self._find_status_code(exception)
        if code in NON_RETRYABLE_CODES:
            return ErrorClassification.NON_RETRYABLE
        if code in QUOTA_CODES:
            return ErrorClassification.QUOTA
        if code in RETRYABLE_CODES:
            return ErrorClassification.RETRYABLE
        if code is not None:
            self.logger.debug(f"Unmapped genai status code {code}, classifying by message")

        return self.fallback.classify(exception)
