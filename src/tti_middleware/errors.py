"""Typed errors raised by image-generation providers."""

from enum import Enum


class TTIErrorCode(str, Enum):
    """Stable error codes callers can branch on."""

    INVALID_CONFIG = "INVALID_CONFIG"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    GENERATION_FAILED = "GENERATION_FAILED"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    CAPABILITY_NOT_SUPPORTED = "CAPABILITY_NOT_SUPPORTED"


class TTIError(Exception):
    """
    Base error for provider failures.

    The rendered message always ends with the original backend text
    ("caused by: ..."), so substring-based classification keeps working on
    wrapped errors.
    """

    default_message = "Image generation failed"

    def __init__(
        self,
        provider: str,
        code: TTIErrorCode,
        message: str | None = None,
        cause: BaseException | None = None,
    ):
        self.provider = provider
        self.code = code
        self.message = message or self.default_message
        self.cause = cause
        super().__init__(self.message)
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        text = f"[{self.provider}] {self.code.value}: {self.message}"
        if self.cause is not None:
            text += f" (caused by: {self.cause})"
        return text


class InvalidConfigError(TTIError):
    """Configuration, credentials or request is invalid."""

    def __init__(self, provider: str, message: str, cause: BaseException | None = None):
        super().__init__(provider, TTIErrorCode.INVALID_CONFIG, message, cause)


class QuotaExceededError(TTIError):
    """Provider quota or rate limit exceeded."""

    default_message = "Provider quota or rate limit exceeded"

    def __init__(self, provider: str, message: str | None = None, cause: BaseException | None = None):
        super().__init__(provider, TTIErrorCode.QUOTA_EXCEEDED, message, cause)


class ProviderUnavailableError(TTIError):
    """Provider service is temporarily unavailable."""

    default_message = "Provider service is temporarily unavailable"

    def __init__(self, provider: str, message: str | None = None, cause: BaseException | None = None):
        super().__init__(provider, TTIErrorCode.PROVIDER_UNAVAILABLE, message, cause)


class GenerationFailedError(TTIError):
    """The backend answered but produced no usable image."""

    def __init__(self, provider: str, message: str, cause: BaseException | None = None):
        super().__init__(provider, TTIErrorCode.GENERATION_FAILED, message, cause)


class NetworkError(TTIError):
    """Connection-level failure talking to the backend."""

    def __init__(self, provider: str, message: str, cause: BaseException | None = None):
        super().__init__(provider, TTIErrorCode.NETWORK_ERROR, message, cause)


class CapabilityNotSupportedError(TTIError):
    """Requested feature is not available for the selected model."""

    def __init__(
        self, provider: str, capability: str, model: str, cause: BaseException | None = None
    ):
        self.capability = capability
        self.model = model
        super().__init__(
            provider,
            TTIErrorCode.CAPABILITY_NOT_SUPPORTED,
            f"Model '{model}' does not support '{capability}'",
            cause,
        )


def to_tti_error(provider: str, error: BaseException, context: str | None = None) -> TTIError:
    """
    Convert a raw backend error to a TTIError subclass.

    TTIError instances are returned unchanged. The original error is kept as
    ``cause`` so its message stays part of the rendered text.
    """
    if isinstance(error, TTIError):
        return error

    suffix = f": {context}" if context else ""
    error_message = str(error).lower()

    if "401" in error_message or "403" in error_message:
        return InvalidConfigError(provider, f"Authentication failed{suffix}", error)

    if "429" in error_message:
        return QuotaExceededError(provider, f"Rate limit exceeded{suffix}", error)

    if any(code in error_message for code in ("502", "503", "504")):
        return ProviderUnavailableError(provider, f"Service temporarily unavailable{suffix}", error)

    if any(marker in error_message for marker in ("timeout", "econnrefused", "enotfound")):
        return NetworkError(provider, f"Network error{suffix}", error)

    return GenerationFailedError(provider, f"Generation failed{suffix}", error)
