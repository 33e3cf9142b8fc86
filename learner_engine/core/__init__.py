"""
Core Module - Shared data model, errors and mastery classification.

Components:
- models: Immutable state records (ItemParameters, ReviewCard, StudentState, ...)
- mastery: Mastery status and 0-5 level classification
- exceptions: Input contract violations

Design Principle:
The model packages (adaptive/, learning/, scheduling/) import their
state types from here rather than defining their own.
"""

from learner_engine.core.exceptions import (
    InvalidItemParametersError,
    InvalidProbabilityError,
    InvalidRatingError,
    InvalidTransitionError,
    LearnerEngineError,
)
from learner_engine.core.mastery import (
    MasteryStatus,
    MasteryThresholds,
    classify_mastery,
    mastery_level,
    prerequisites_met,
    unmet_prerequisites,
)
from learner_engine.core.models import (
    DEFAULT_TOPIC_PRIOR,
    MASTERY_CEILING,
    MASTERY_FLOOR,
    AbilityState,
    Attempt,
    CardState,
    ItemParameters,
    ItemResponse,
    Question,
    QuestionType,
    ReviewCard,
    StudentState,
)

__all__ = [
    # Models
    "AbilityState",
    "Attempt",
    "CardState",
    "ItemParameters",
    "ItemResponse",
    "Question",
    "QuestionType",
    "ReviewCard",
    "StudentState",
    "DEFAULT_TOPIC_PRIOR",
    "MASTERY_FLOOR",
    "MASTERY_CEILING",
    # Mastery
    "MasteryStatus",
    "MasteryThresholds",
    "classify_mastery",
    "mastery_level",
    "prerequisites_met",
    "unmet_prerequisites",
    # Errors
    "LearnerEngineError",
    "InvalidItemParametersError",
    "InvalidProbabilityError",
    "InvalidRatingError",
    "InvalidTransitionError",
]
