"""Tests for retry delay calculation."""

import random

import pytest

from tti_middleware import RetryConfig
from tti_middleware.strategies import (
    TIMEOUT_RETRY_DELAY_MS,
    ExponentialBackoffStrategy,
    calculate_retry_delay,
)


def test_exponential_growth_without_jitter():
    """Test the delay doubles per attempt."""
    config = RetryConfig(delay_ms=1000, backoff_multiplier=2.0, jitter=False)

    assert [calculate_retry_delay(n, config) for n in (1, 2, 3, 4)] == [1000, 2000, 4000, 8000]


def test_delay_is_capped():
    """Test that delays never exceed max_delay_ms."""
    config = RetryConfig(delay_ms=1000, backoff_multiplier=2.0, max_delay_ms=30000, jitter=False)

    assert calculate_retry_delay(5, config) == 16000
    assert calculate_retry_delay(6, config) == 30000
    assert calculate_retry_delay(20, config) == 30000


def test_constant_multiplier():
    """Test that a multiplier of 1.0 yields a constant delay."""
    config = RetryConfig(delay_ms=250, backoff_multiplier=1.0, jitter=False)

    assert {calculate_retry_delay(n, config) for n in range(1, 8)} == {250}


def test_fractional_delay_is_rounded():
    """Test that non-integral delays are rounded to whole milliseconds."""
    config = RetryConfig(delay_ms=100, backoff_multiplier=1.5, jitter=False)

    assert calculate_retry_delay(2, config) == 150
    assert calculate_retry_delay(3, config) == 225
    assert calculate_retry_delay(4, config) == 338


def test_jitter_stays_within_bounds():
    """Test that jittered delays fall in [0, base delay]."""
    config = RetryConfig(delay_ms=1000, backoff_multiplier=2.0, max_delay_ms=30000, jitter=True)
    strategy = ExponentialBackoffStrategy(rng=random.Random(42))

    for attempt in range(1, 10):
        upper = min(1000 * 2 ** (attempt - 1), 30000)
        for _ in range(50):
            delay = strategy.retry_delay(attempt, config)
            assert isinstance(delay, int)
            assert 0 <= delay <= upper


def test_jitter_with_seeded_rng_is_deterministic():
    """Test that a seeded RNG reproduces the same delays."""
    config = RetryConfig(jitter=True)
    first = ExponentialBackoffStrategy(rng=random.Random(7))
    second = ExponentialBackoffStrategy(rng=random.Random(7))

    assert [first.retry_delay(n, config) for n in range(1, 6)] == [
        second.retry_delay(n, config) for n in range(1, 6)
    ]


def test_timeout_delay_is_fixed():
    """Test that timeout retries wait a fixed two seconds."""
    strategy = ExponentialBackoffStrategy()
    config = RetryConfig(delay_ms=50, jitter=True)

    assert TIMEOUT_RETRY_DELAY_MS == 2000
    assert strategy.timeout_delay(1, config) == 2000
    assert strategy.timeout_delay(3, config) == 2000


def test_attempt_must_be_positive():
    """Test that attempt numbers start at 1."""
    with pytest.raises(ValueError):
        ExponentialBackoffStrategy().base_delay(0, RetryConfig())
