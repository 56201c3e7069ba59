"""Error classification from httpx status codes and transport failures."""

import logging

import httpx

from ..strategies.errors import (
    DefaultErrorClassifier,
    ErrorClassification,
    ErrorClassifier,
    OperationTimeoutError,
)
from .genai import NON_RETRYABLE_CODES, QUOTA_CODES, RETRYABLE_CODES


class HttpErrorClassifier(ErrorClassifier):
    """Classify errors raised by httpx-based providers.

    An ``httpx.HTTPStatusError`` anywhere in the cause chain is classified by
    its status code; connection and read failures (``httpx.TransportError``)
    are retryable. Everything else goes to the message based classifier.
    """

    def __init__(self, fallback: ErrorClassifier | None = None, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(__name__)
        self.fallback = fallback or DefaultErrorClassifier(logger=self.logger)

    def classify(self, exception: BaseException) -> ErrorClassification:
        """Classify by HTTP status or transport failure when one is in the chain."""
        if isinstance(exception, OperationTimeoutError):
            return ErrorClassification.TIMEOUT

        current: BaseException | None = exception
        depth = 0
        while current is not None and depth < 10:
            if isinstance(current, httpx.HTTPStatusError):
                code = current.response.status_code
                if code in NON_RETRYABLE_CODES:
                    return ErrorClassification.NON_RETRYABLE
                if code in QUOTA_CODES:
                    return ErrorClassification.QUOTA
                if code in RETRYABLE_CODES:
                    return ErrorClassification.RETRYABLE
                self.logger.debug(f"Unmapped HTTP status {code}, classifying by message")
                break
            if isinstance(current, httpx.TransportError):
                self.logger.debug(f"Transport failure {type(current).__name__} is retryable")
                return ErrorClassification.RETRYABLE
            current = current.__cause__
            depth += 1

        return self.fallback.classify(exception)
