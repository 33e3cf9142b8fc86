"""
Engine error types.

Only genuine input contract violations are raised. Numerically degenerate
cases (flat likelihood, zero posterior mass, empty candidate sets) are
absorbed by the models and never surface here.
"""

from __future__ import annotations


class LearnerEngineError(Exception):
    """Base class for all learner engine errors."""

    pass


class InvalidItemParametersError(LearnerEngineError, ValueError):
    """Raised when IRT item parameters are non-finite or out of range."""

    pass


class InvalidProbabilityError(LearnerEngineError, ValueError):
    """Raised when a probability argument lies outside its valid interval."""

    pass


class InvalidRatingError(LearnerEngineError, ValueError):
    """Raised when a review rating is outside the scheduler's scale."""

    pass


class InvalidTransitionError(LearnerEngineError):
    """Raised when an interaction session is driven out of order."""

    pass
