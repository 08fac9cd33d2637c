"""Exception hierarchy for the answer grading pipeline."""

from __future__ import annotations


class GradingError(Exception):
    """Raised by a grader when an answer cannot be graded automatically."""


class AIResponseError(GradingError):
    """Raised when the AI completion is missing, times out, or cannot be parsed."""


class AttemptLoadError(ValueError):
    """Raised when an exam or attempt document is malformed."""
