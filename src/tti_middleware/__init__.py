"""Resilient middleware for remote image-generation backends.

This package runs text-to-image requests against remote backends with a
retry engine that classifies failures, applies capped exponential backoff,
guards every attempt with a deadline and, optionally, rotates through
regional endpoints when one runs out of quota.

Key features:
- Message-based error classification behind a pluggable ErrorClassifier
- Independent budgets for general retries and timeout retries
- Timeout guard that abandons slow attempts without cancelling them
- Region rotation with a bonus attempt on the fallback region
- Observer pattern for monitoring

Example:
    >>> from tti_middleware import RetryExecutor, RetryOptions
    >>>
    >>> executor = RetryExecutor()
    >>> result = await executor.run(
    ...     call_backend,
    ...     RetryOptions(max_retries=2, delay_ms=500),
    ...     operation_name="Imagen API call",
    ... )
"""

# Configuration
from .core import (
    DEFAULT_RETRY_CONFIG,
    ProviderSettings,
    RegionRotationConfig,
    RetryConfig,
    configure_logging,
    resolve_retry_config,
)

# Errors
from .errors import (
    CapabilityNotSupportedError,
    GenerationFailedError,
    InvalidConfigError,
    NetworkError,
    ProviderUnavailableError,
    QuotaExceededError,
    TTIError,
    TTIErrorCode,
    to_tti_error,
)

# Execution engine
from .executor import RetryExecutor, RetryOutcome, RetryState

# Models
from .models import (
    ModelInfo,
    RetryOptions,
    TTICapabilities,
    TTIImage,
    TTIProvider,
    TTIBilling,
    TTIReferenceImage,
    TTIRequest,
    TTIResponse,
    TTIResponseMetadata,
    TTIUsage,
)

# Observers
from .observers import BaseObserver, ExecutorObserver, MetricsObserver, RetryEvent

# Providers
from .providers import (
    BaseImageProvider,
    EdenAIConfig,
    EdenAIImageProvider,
    GoogleCloudConfig,
    GoogleCloudImageProvider,
    IonosConfig,
    IonosImageProvider,
)
from .regions import RegionCursor, RegionRotator
from .service import TTIService

# Error classification and delay strategies
from .strategies import (
    DefaultErrorClassifier,
    DelayStrategy,
    ErrorClassification,
    ErrorClassifier,
    ExponentialBackoffStrategy,
    OperationTimeoutError,
    calculate_retry_delay,
)
from .timeout import with_timeout

__all__ = [
    # Configuration
    "DEFAULT_RETRY_CONFIG",
    "ProviderSettings",
    "RegionRotationConfig",
    "RetryConfig",
    "configure_logging",
    "resolve_retry_config",
    # Errors
    "CapabilityNotSupportedError",
    "GenerationFailedError",
    "InvalidConfigError",
    "NetworkError",
    "ProviderUnavailableError",
    "QuotaExceededError",
    "TTIError",
    "TTIErrorCode",
    "to_tti_error",
    # Engine
    "RetryExecutor",
    "RetryOutcome",
    "RetryState",
    "RegionCursor",
    "RegionRotator",
    "with_timeout",
    # Strategies
    "ErrorClassifier",
    "ErrorClassification",
    "DefaultErrorClassifier",
    "OperationTimeoutError",
    "DelayStrategy",
    "ExponentialBackoffStrategy",
    "calculate_retry_delay",
    # Models
    "ModelInfo",
    "RetryOptions",
    "TTICapabilities",
    "TTIImage",
    "TTIProvider",
    "TTIBilling",
    "TTIReferenceImage",
    "TTIRequest",
    "TTIResponse",
    "TTIResponseMetadata",
    "TTIUsage",
    # Observers
    "ExecutorObserver",
    "BaseObserver",
    "MetricsObserver",
    "RetryEvent",
    # Providers
    "BaseImageProvider",
    "GoogleCloudConfig",
    "GoogleCloudImageProvider",
    "EdenAIConfig",
    "EdenAIImageProvider",
    "IonosConfig",
    "IonosImageProvider",
    "TTIService",
]

__version__ = "0.1.0"
