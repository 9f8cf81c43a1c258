"""
Error taxonomy for the scale-construction pipeline.

Every error is a deterministic precondition failure local to one dataset
variant. Messages name the violated precondition and, where there is one,
the offending column or items.
"""

from __future__ import annotations

from typing import Iterable, Optional


class SurveyMethodsError(Exception):
    """Base class for all pipeline errors."""


class InvalidSpecError(SurveyMethodsError, ValueError):
    """Malformed target covariance matrix or sample size."""


class InvalidInputError(SurveyMethodsError, ValueError):
    """Non-numeric, missing or non-finite data."""

    def __init__(self, message: str, column: Optional[str] = None):
        super().__init__(message)
        self.column = column


class InsufficientItemsError(SurveyMethodsError, ValueError):
    """Fewer items than the computation needs."""


class DegenerateVarianceError(SurveyMethodsError, ValueError):
    """One or more items have zero variance."""

    def __init__(self, items: Iterable[str]):
        self.items = list(items)
        super().__init__(
            f"Items with zero variance: {', '.join(map(str, self.items))}"
        )


class FactorExtractionFailedError(SurveyMethodsError, RuntimeError):
    """The single-factor model could not be estimated."""


class PipelineStateError(SurveyMethodsError, RuntimeError):
    """A pipeline step was called out of order."""
