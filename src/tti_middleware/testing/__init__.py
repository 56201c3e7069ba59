"""Testing utilities for tti_middleware."""

from .mocks import HANG, RecordingSleep, ScriptedOperation

__all__ = ["HANG", "RecordingSleep", "ScriptedOperation"]
