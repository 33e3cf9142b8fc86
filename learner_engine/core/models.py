"""
Engine Data Model.

Immutable state records passed in and out of the models by value.
Nothing here is owned by the engine: ability, mastery and review cards
are loaded by the persistence layer, handed to a pure function, and the
returned copies are written back by the caller.

Design:
- ItemParameters: IRT a/b/c for a single question (validated on creation)
- AbilityState: latent ability (theta) with optional standard error
- ReviewCard: SM-2 and FSRS scheduling state for one (student, question)
- Attempt: a single submitted answer
- Question: a bank entry (topic, IRT parameters, prerequisites)
- StudentState: everything the orchestrator reads for one student
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from learner_engine.core.exceptions import (
    InvalidItemParametersError,
    InvalidProbabilityError,
)

# Mastery bounds. Exactly 0 or 1 can never be left by a Bayesian update.
MASTERY_FLOOR = 0.01
MASTERY_CEILING = 0.99
DEFAULT_TOPIC_PRIOR = 0.1


def _is_finite(value: float) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)


class QuestionType(str, Enum):
    """Question formats with distinct guess/slip behaviour."""

    MULTIPLE_CHOICE = "multiple_choice"
    NUMERIC = "numeric"
    PROOF_STEP = "proof_step"
    FILL_BLANK = "fill_blank"


class CardState(str, Enum):
    """FSRS learning phase of a review card."""

    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"


@dataclass(frozen=True)
class ItemParameters:
    """
    IRT parameters authored per question.

    Attributes:
        difficulty: b, location on the ability scale
        discrimination: a, slope at the inflection point (> 0)
        guessing: c, lower asymptote (0 <= c < 1)
    """

    difficulty: float = 0.0
    discrimination: float = 1.0
    guessing: float = 0.0

    def __post_init__(self):
        for name in ("difficulty", "discrimination", "guessing"):
            value = getattr(self, name)
            if not _is_finite(value):
                raise InvalidItemParametersError(f"{name} must be a finite number, got {value!r}")
        if self.discrimination <= 0:
            raise InvalidItemParametersError(
                f"discrimination must be > 0, got {self.discrimination}"
            )
        if not 0 <= self.guessing < 1:
            raise InvalidItemParametersError(f"guessing must be in [0, 1), got {self.guessing}")


@dataclass(frozen=True)
class ItemResponse:
    """One scored response, the unit consumed by ability estimation."""

    item: ItemParameters
    is_correct: bool


@dataclass(frozen=True)
class AbilityState:
    """Latent ability estimate. New students start at the population mean."""

    theta: float = 0.0
    standard_error: float | None = None

    def __post_init__(self):
        if not _is_finite(self.theta):
            raise InvalidProbabilityError(f"theta must be finite, got {self.theta!r}")
        if self.standard_error is not None and not _is_finite(self.standard_error):
            raise InvalidProbabilityError(
                f"standard_error must be finite, got {self.standard_error!r}"
            )


@dataclass(frozen=True)
class ReviewCard:
    """
    Spaced repetition state for a (student, question) pair.

    SM-2 uses ease_factor/interval_days/repetitions. FSRS additionally
    uses stability, difficulty (1-10, unrelated to IRT b), lapses and state.
    """

    card_id: str
    ease_factor: float = 2.5
    interval_days: int = 0
    repetitions: int = 0
    due_date: datetime | None = None
    last_review: datetime | None = None
    stability: float = 0.0
    difficulty: float = 0.0
    lapses: int = 0
    state: CardState = CardState.NEW

    def is_due(self, now: datetime) -> bool:
        """A card that was never scheduled is always due."""
        if self.due_date is None:
            return True
        return now >= self.due_date


@dataclass(frozen=True)
class Attempt:
    """A submitted answer. Immutable; history is owned by the caller."""

    is_correct: bool
    timestamp: datetime
    time_taken_ms: float = 0.0
    hints_used: int = 0
    attempt_number: int = 1
    confidence: int | None = None  # Self-reported 1-5

    def __post_init__(self):
        if not _is_finite(self.time_taken_ms) or self.time_taken_ms < 0:
            raise InvalidProbabilityError(
                f"time_taken_ms must be a non-negative number, got {self.time_taken_ms!r}"
            )
        if self.hints_used < 0:
            raise InvalidProbabilityError(f"hints_used must be >= 0, got {self.hints_used}")
        if self.attempt_number < 1:
            raise InvalidProbabilityError(
                f"attempt_number must be >= 1, got {self.attempt_number}"
            )
        if self.confidence is not None and not 1 <= self.confidence <= 5:
            raise InvalidProbabilityError(f"confidence must be 1-5, got {self.confidence}")


@dataclass(frozen=True)
class Question:
    """A question bank entry as supplied by the content layer."""

    id: str
    topic_id: str
    item: ItemParameters = field(default_factory=ItemParameters)
    question_type: QuestionType = QuestionType.MULTIPLE_CHOICE
    prerequisites: tuple[str, ...] = ()
    author_difficulty: float | None = None  # 1-10 authoring scale
    expected_time_ms: float = 30000.0
    scaffold_question_ids: tuple[str, ...] = ()  # Easier follow-ups for a wrong answer


@dataclass(frozen=True)
class StudentState:
    """
    Everything the orchestrator needs to know about one student.

    The mapping fields are never mutated in place; updates return a new
    StudentState with fresh copies.
    """

    ability: AbilityState = field(default_factory=AbilityState)
    mastery: dict[str, float] = field(default_factory=dict)
    cards: dict[str, ReviewCard] = field(default_factory=dict)
    responses: tuple[ItemResponse, ...] = ()
    practice_counts: dict[str, int] = field(default_factory=dict)
    last_practiced: dict[str, datetime] = field(default_factory=dict)
    seen_question_ids: frozenset[str] = frozenset()

    def __post_init__(self):
        for topic_id, value in self.mastery.items():
            if not _is_finite(value) or not 0 < value < 1:
                raise InvalidProbabilityError(
                    f"mastery for topic {topic_id!r} must be in (0, 1), got {value!r}"
                )

    def topic_mastery(self, topic_id: str, default: float = DEFAULT_TOPIC_PRIOR) -> float:
        """Mastery for a topic, falling back to the low prior for unseen topics."""
        return self.mastery.get(topic_id, default)

    def practice_count(self, topic_id: str) -> int:
        return self.practice_counts.get(topic_id, 0)
