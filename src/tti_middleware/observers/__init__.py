"""Observers for monitoring retry engine events."""

from .base import BaseObserver, ExecutorObserver, RetryEvent
from .metrics import MetricsObserver

__all__ = ["ExecutorObserver", "BaseObserver", "RetryEvent", "MetricsObserver"]
