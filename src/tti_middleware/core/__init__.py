"""Core components for the retry engine."""

from .config import (
    DEFAULT_RETRY_CONFIG,
    LOG_LEVELS,
    ProviderSettings,
    RegionRotationConfig,
    RetryConfig,
    configure_logging,
    resolve_retry_config,
)
from .protocols import ClientFactory, OnRetryFunc, Operation, RegionOperation, SleepFunc

__all__ = [
    "DEFAULT_RETRY_CONFIG",
    "LOG_LEVELS",
    "ProviderSettings",
    "RegionRotationConfig",
    "RetryConfig",
    "configure_logging",
    "resolve_retry_config",
    "ClientFactory",
    "OnRetryFunc",
    "Operation",
    "RegionOperation",
    "SleepFunc",
]
