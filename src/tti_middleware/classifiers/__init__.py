"""Provider-specific error classifiers."""

from .genai import GenAIErrorClassifier
from .http import HttpErrorClassifier

__all__ = ["GenAIErrorClassifier", "HttpErrorClassifier"]
