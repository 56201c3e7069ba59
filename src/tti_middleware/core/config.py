"""Configuration management for the retry engine and providers."""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from typing import Any

logger = logging.getLogger(__name__)

# Log level names accepted in TTI_LOG_LEVEL, mapped onto stdlib levels
LOG_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "silent": logging.CRITICAL + 10,
}


@dataclass(frozen=True)
class RetryConfig:
    """Fully resolved retry policy. Delays and timeouts are in milliseconds."""

    max_retries: int = 3
    delay_ms: int = 1000
    backoff_multiplier: float = 2.0
    max_delay_ms: int = 30000
    jitter: bool = True
    timeout_ms: int = 45000
    timeout_retries: int = 2

    @property
    def absolute_max_attempts(self) -> int:
        """Hard ceiling on attempts: initial + general retries + timeout retries."""
        return 1 + self.max_retries + self.timeout_retries

    def validate(self) -> None:
        """Validate retry configuration."""
        if self.max_retries < 0:
            raise ValueError(
                f"max_retries must be >= 0 (got {self.max_retries}). "
                f"Set retry.max_retries to 0 to disable general retries or a positive integer."
            )
        if self.delay_ms < 0:
            raise ValueError(
                f"delay_ms must be >= 0 (got {self.delay_ms}). "
                f"Set retry.delay_ms to a non-negative number of milliseconds."
            )
        if self.backoff_multiplier < 1.0:
            raise ValueError(
                f"backoff_multiplier must be >= 1.0 (got {self.backoff_multiplier}). "
                f"Use 1.0 for a constant delay or higher (typical: 2.0) for exponential backoff."
            )
        if self.max_delay_ms < 0:
            raise ValueError(
                f"max_delay_ms must be >= 0 (got {self.max_delay_ms}). "
                f"Set retry.max_delay_ms to the longest single delay you accept."
            )
        if self.timeout_retries < 0:
            raise ValueError(
                f"timeout_retries must be >= 0 (got {self.timeout_retries}). "
                f"Set retry.timeout_retries to 0 to fail on the first timeout."
            )


DEFAULT_RETRY_CONFIG = RetryConfig()

_RETRY_FIELDS = tuple(f.name for f in fields(RetryConfig))


def _migrate_legacy_backoff(options: dict[str, Any]) -> dict[str, Any]:
    """Fold the legacy ``incremental_backoff`` flag into ``backoff_multiplier``.

    Old callers used a boolean to choose between a static and a linear delay.
    Under the exponential formula the closest equivalent for both is a
    constant delay, so the flag maps to ``backoff_multiplier=1.0`` unless a
    multiplier was given explicitly.
    """
    legacy = options.pop("incremental_backoff", None)
    if legacy is not None and options.get("backoff_multiplier") is None:
        logger.debug(
            "Migrating deprecated incremental_backoff=%s to backoff_multiplier=1.0", legacy
        )
        options["backoff_multiplier"] = 1.0
    return options


def resolve_retry_config(
    option: "bool | Mapping[str, Any] | Any | None",
    defaults: RetryConfig = DEFAULT_RETRY_CONFIG,
) -> RetryConfig | None:
    """
    Merge a request-level retry override with the defaults.

    Args:
        option: ``False`` disables retries, ``True``/``None`` selects the
            defaults, and a mapping or ``RetryOptions`` model supplies a
            partial override whose unset fields fall back to ``defaults``.
        defaults: Baseline policy

    Returns:
        A fully populated RetryConfig, or None when retries are disabled
    """
    if option is False:
        return None
    if option is None or option is True:
        return defaults

    if isinstance(option, Mapping):
        raw = dict(option)
    elif hasattr(option, "model_dump"):
        raw = option.model_dump(exclude_none=True)
    else:
        raise TypeError(
            f"retry must be a bool, a mapping or RetryOptions (got {type(option).__name__})"
        )

    raw = _migrate_legacy_backoff({k: v for k, v in raw.items() if v is not None})
    unknown = set(raw) - set(_RETRY_FIELDS)
    if unknown:
        raise ValueError(f"Unknown retry option(s): {', '.join(sorted(unknown))}")

    config = replace(defaults, **raw)
    config.validate()
    return config


@dataclass(frozen=True)
class RegionRotationConfig:
    """Ordered candidate regions tried on quota errors, plus a last-resort fallback."""

    regions: tuple[str, ...]
    fallback: str
    always_try_fallback: bool = True

    def __post_init__(self):
        """Normalise the candidate list to a tuple."""
        object.__setattr__(self, "regions", tuple(self.regions))

    def validate(self) -> None:
        """Validate region rotation configuration."""
        if not self.regions:
            raise ValueError(
                "region_rotation.regions must contain at least one region. "
                "List the candidate regions in the order they should be tried."
            )
        if not self.fallback:
            raise ValueError(
                "region_rotation.fallback must be a non-empty region name "
                "(for example 'global')."
            )
        if self.fallback in self.regions:
            raise ValueError(
                f"region_rotation.fallback {self.fallback!r} must not also be listed in "
                f"region_rotation.regions. Remove it from the candidate list."
            )


@dataclass
class ProviderSettings:
    """Process-level settings shared by providers and the service."""

    log_level: str = "info"
    default_provider: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ProviderSettings":
        """Read TTI_LOG_LEVEL and TTI_DEFAULT_PROVIDER from the environment."""
        env = os.environ if environ is None else environ
        level = env.get("TTI_LOG_LEVEL", "info").lower()
        if level not in LOG_LEVELS:
            logger.warning(f"⚠️  Unknown TTI_LOG_LEVEL {level!r}, falling back to 'info'")
            level = "info"
        return cls(log_level=level, default_provider=env.get("TTI_DEFAULT_PROVIDER"))

    def validate(self) -> None:
        """Validate settings."""
        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {', '.join(LOG_LEVELS)} (got {self.log_level!r})."
            )


def configure_logging(level: str | int, logger_name: str = "tti_middleware") -> logging.Logger:
    """Set the level of the package logger and return it."""
    package_logger = logging.getLogger(logger_name)
    if isinstance(level, str):
        try:
            level = LOG_LEVELS[level.lower()]
        except KeyError:
            raise ValueError(
                f"Unknown log level {level!r}. Use one of: {', '.join(LOG_LEVELS)}"
            ) from None
    package_logger.setLevel(level)
    return package_logger
