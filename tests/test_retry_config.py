"""Tests for retry configuration resolution and validation."""

import pytest

from tti_middleware import (
    DEFAULT_RETRY_CONFIG,
    ProviderSettings,
    RegionRotationConfig,
    RetryConfig,
    RetryOptions,
    resolve_retry_config,
)
from tti_middleware.core.config import configure_logging
from tti_middleware.strategies import calculate_retry_delay


def test_defaults():
    """Test the default retry policy values."""
    config = RetryConfig()
    assert config.max_retries == 3
    assert config.delay_ms == 1000
    assert config.backoff_multiplier == 2.0
    assert config.max_delay_ms == 30000
    assert config.jitter is True
    assert config.timeout_ms == 45000
    assert config.timeout_retries == 2
    assert config.absolute_max_attempts == 6


def test_disabled_and_default_selection():
    """Test that False disables retries and True/None select the defaults."""
    assert resolve_retry_config(False) is None
    assert resolve_retry_config(True) is DEFAULT_RETRY_CONFIG
    assert resolve_retry_config(None) is DEFAULT_RETRY_CONFIG


def test_partial_override_merges_with_defaults():
    """Test that unset fields keep their default values."""
    config = resolve_retry_config({"max_retries": 5, "jitter": False})

    assert config.max_retries == 5
    assert config.jitter is False
    assert config.delay_ms == 1000
    assert config.timeout_retries == 2


def test_retry_options_model_override():
    """Test resolution from the pydantic request model."""
    config = resolve_retry_config(RetryOptions(timeout_ms=500, timeout_retries=0))

    assert config.timeout_ms == 500
    assert config.timeout_retries == 0
    assert config.max_retries == 3


def test_custom_defaults():
    """Test that overrides merge onto caller-supplied defaults."""
    base = RetryConfig(max_retries=1, delay_ms=10, max_delay_ms=100)
    config = resolve_retry_config({"delay_ms": 20}, defaults=base)

    assert config.max_retries == 1
    assert config.delay_ms == 20
    assert config.max_delay_ms == 100


def test_legacy_incremental_backoff_becomes_constant_delay():
    """Test that the deprecated flag maps to a constant multiplier."""
    assert resolve_retry_config({"incremental_backoff": True}).backoff_multiplier == 1.0
    assert resolve_retry_config({"incremental_backoff": False}).backoff_multiplier == 1.0
    assert resolve_retry_config(RetryOptions(incremental_backoff=True)).backoff_multiplier == 1.0

    # An explicit multiplier wins
    explicit = resolve_retry_config({"incremental_backoff": True, "backoff_multiplier": 3.0})
    assert explicit.backoff_multiplier == 3.0


def test_unknown_options_rejected():
    """Test that unknown retry keys raise."""
    with pytest.raises(ValueError, match="Unknown retry option"):
        resolve_retry_config({"retries": 2})


def test_unsupported_option_type():
    """Test that non-mapping values raise TypeError."""
    with pytest.raises(TypeError, match="retry must be"):
        resolve_retry_config(3)


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"max_retries": -1}, "max_retries"),
        ({"delay_ms": -5}, "delay_ms"),
        ({"backoff_multiplier": 0.5}, "backoff_multiplier"),
        ({"max_delay_ms": -1}, "max_delay_ms"),
        ({"timeout_retries": -1}, "timeout_retries"),
    ],
)
def test_invalid_values_rejected(overrides, message):
    """Test validation of resolved configs."""
    with pytest.raises(ValueError, match=message):
        resolve_retry_config(overrides)


def test_delay_above_cap_is_accepted_and_capped():
    """Test that a base delay above max_delay_ms resolves and every delay is capped."""
    long_base = resolve_retry_config({"delay_ms": 60000, "jitter": False})
    assert long_base.delay_ms == 60000
    assert long_base.max_delay_ms == 30000
    assert calculate_retry_delay(1, long_base) == 30000
    assert calculate_retry_delay(3, long_base) == 30000

    low_cap = resolve_retry_config(RetryOptions(max_delay_ms=500, jitter=False))
    assert low_cap.delay_ms == 1000
    assert calculate_retry_delay(1, low_cap) == 500

    # With jitter the draw stays within the capped range
    jittered = resolve_retry_config(RetryOptions(max_delay_ms=500))
    assert all(0 <= calculate_retry_delay(2, jittered) <= 500 for _ in range(20))


def test_region_rotation_config():
    """Test rotation config normalisation and validation."""
    config = RegionRotationConfig(regions=["us-east4", "europe-west1"], fallback="global")
    assert config.regions == ("us-east4", "europe-west1")
    assert config.always_try_fallback is True
    config.validate()

    with pytest.raises(ValueError, match="at least one region"):
        RegionRotationConfig(regions=[], fallback="global").validate()

    with pytest.raises(ValueError, match="fallback"):
        RegionRotationConfig(regions=["us-east4"], fallback="").validate()

    with pytest.raises(ValueError, match="must not also be listed"):
        RegionRotationConfig(regions=["us-east4", "global"], fallback="global").validate()


def test_provider_settings_from_env():
    """Test reading settings from an environment mapping."""
    settings = ProviderSettings.from_env(
        {"TTI_LOG_LEVEL": "DEBUG", "TTI_DEFAULT_PROVIDER": "google-cloud"}
    )
    assert settings.log_level == "debug"
    assert settings.default_provider == "google-cloud"

    defaults = ProviderSettings.from_env({})
    assert defaults.log_level == "info"
    assert defaults.default_provider is None


def test_provider_settings_unknown_level(caplog):
    """Test that an unknown log level falls back to info with a warning."""
    settings = ProviderSettings.from_env({"TTI_LOG_LEVEL": "verbose"})

    assert settings.log_level == "info"
    assert "Unknown TTI_LOG_LEVEL" in caplog.text

    with pytest.raises(ValueError, match="log_level"):
        ProviderSettings(log_level="verbose").validate()


def test_configure_logging_levels():
    """Test mapping of level names onto a logger."""
    logger = configure_logging("warn", logger_name="tti_middleware.test_config")
    assert logger.level == 30

    configure_logging(10, logger_name="tti_middleware.test_config")
    assert logger.level == 10

    with pytest.raises(ValueError, match="Unknown log level"):
        configure_logging("loud", logger_name="tti_middleware.test_config")
