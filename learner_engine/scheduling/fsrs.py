"""
FSRS Spaced Repetition Scheduler.

Free Spaced Repetition Scheduler, v4 formulas:
- Stability (S): days until recall probability falls to 90%
- Difficulty (D): inherent card difficulty, 1 (easy) to 10 (hard)
- Retrievability (R): current probability of recall

    R(t, S) = (1 + t / (9 S))^-1
    I(r, S) = 9 S (1/r - 1)

The weight vector follows the FSRS reference convention (w0..w16) and is
configuration, not a constant of the algorithm.

Grade Scale:
1 - Again (forgot)
2 - Hard (recalled with significant difficulty)
3 - Good (recalled with some effort)
4 - Easy (effortless recall)
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime

from loguru import logger

from learner_engine.config import FSRS_V4_WEIGHTS
from learner_engine.core.exceptions import InvalidRatingError
from learner_engine.core.models import Attempt, CardState, ReviewCard
from learner_engine.scheduling.base import due_date_after

GRADE_AGAIN = 1  # Complete failure
GRADE_HARD = 2  # Correct but difficult
GRADE_GOOD = 3  # Correct with normal effort
GRADE_EASY = 4  # Correct with little effort

MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 10.0


@dataclass(frozen=True)
class FSRSParameters:
    """FSRS weights plus scheduling targets."""

    w: tuple[float, ...] = field(default_factory=lambda: tuple(FSRS_V4_WEIGHTS))
    request_retention: float = 0.9
    maximum_interval: int = 36500

    def __post_init__(self):
        if len(self.w) != len(FSRS_V4_WEIGHTS):
            raise ValueError(f"FSRS needs {len(FSRS_V4_WEIGHTS)} weights, got {len(self.w)}")
        if not 0 < self.request_retention < 1:
            raise ValueError(
                f"request_retention must be in (0, 1), got {self.request_retention}"
            )

    @classmethod
    def from_weights(cls, weights: Sequence[float], **kwargs) -> FSRSParameters:
        return cls(w=tuple(weights), **kwargs)


def retrievability(stability: float, elapsed_days: float) -> float:
    """
    Probability of recall after elapsed_days.

    Returns 0 for a card without stability (never learned).
    """
    if stability <= 0:
        return 0.0
    return 1.0 / (1.0 + max(0.0, elapsed_days) / (9.0 * stability))


class FSRSScheduler:
    """
    FSRS v4 scheduler.

    Calculates review intervals from memory stability and the desired
    retention rate. Difficulty and stability are kept on the card and
    are independent of IRT item difficulty.
    """

    name = "fsrs"

    def __init__(self, params: FSRSParameters | None = None):
        self.params = params or FSRSParameters()
        self.w = self.params.w

    def new_card(self, card_id: str) -> ReviewCard:
        return ReviewCard(card_id=card_id)

    def schedule(self, card: ReviewCard, rating: int, now: datetime) -> ReviewCard:
        """
        Process a review and return the updated card.

        Args:
            card: Current card state
            rating: FSRS grade (1-4)
            now: Review timestamp

        Returns:
            Card with new stability, difficulty, interval and due date
        """
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 4:
            raise InvalidRatingError(f"FSRS rating must be an integer 1-4, got {rating!r}")

        lapses = card.lapses
        repetitions = card.repetitions

        if card.state == CardState.NEW or card.stability <= 0:
            # First review - use initial stability
            stability = self._initial_stability(rating)
            difficulty = self._initial_difficulty(rating)
            state = CardState.LEARNING if rating == GRADE_AGAIN else CardState.REVIEW
        else:
            elapsed = self._elapsed_days(card, now)
            r = retrievability(card.stability, elapsed)
            # Imported cards may carry a difficulty outside 1-10
            previous_difficulty = _clamp_difficulty(card.difficulty)
            difficulty = self._next_difficulty(previous_difficulty, rating)
            if rating == GRADE_AGAIN:
                lapses += 1
                stability = self._next_forget_stability(previous_difficulty, card.stability, r)
                state = CardState.RELEARNING
            else:
                stability = self._next_recall_stability(previous_difficulty, card.stability, r, rating)
                state = CardState.REVIEW

        repetitions = 0 if rating == GRADE_AGAIN else repetitions + 1
        interval = self.next_interval(stability)

        logger.debug(
            f"FSRS review {card.card_id}: grade={rating}, S={stability:.2f}, "
            f"D={difficulty:.2f}, interval={interval}d"
        )

        return replace(
            card,
            stability=stability,
            difficulty=difficulty,
            interval_days=interval,
            repetitions=repetitions,
            lapses=lapses,
            state=state,
            due_date=due_date_after(now, interval),
            last_review=now,
        )

    def next_interval(self, stability: float) -> int:
        """Days until recall probability drops to the requested retention."""
        interval = 9.0 * stability * (1.0 / self.params.request_retention - 1.0)
        return int(min(self.params.maximum_interval, max(1, round(interval))))

    def rating_from_attempt(self, attempt: Attempt, expected_time_ms: float | None = None) -> int:
        return rating_from_attempt(
            attempt.is_correct,
            time_taken_ms=attempt.time_taken_ms or None,
            expected_time_ms=expected_time_ms,
            hints_used=attempt.hints_used,
        )

    @staticmethod
    def _elapsed_days(card: ReviewCard, now: datetime) -> float:
        if card.last_review is None:
            return 0.0
        return max(0.0, (now - card.last_review).total_seconds() / 86400.0)

    def _initial_stability(self, grade: int) -> float:
        return max(0.1, self.w[grade - 1])

    def _initial_difficulty(self, grade: int) -> float:
        return _clamp_difficulty(self.w[4] - (grade - 3) * self.w[5])

    def _next_difficulty(self, d: float, grade: int) -> float:
        """Difficulty step with mean reversion toward the Good initial difficulty."""
        stepped = d - self.w[6] * (grade - 3)
        reverted = self.w[7] * self.w[4] + (1.0 - self.w[7]) * stepped
        return _clamp_difficulty(reverted)

    def _next_recall_stability(self, d: float, s: float, r: float, grade: int) -> float:
        hard_penalty = self.w[15] if grade == GRADE_HARD else 1.0
        easy_bonus = self.w[16] if grade == GRADE_EASY else 1.0
        growth = (
            math.exp(self.w[8])
            * (11.0 - d)
            * math.pow(s, -self.w[9])
            * (math.exp((1.0 - r) * self.w[10]) - 1.0)
            * hard_penalty
            * easy_bonus
        )
        return s * (1.0 + growth)

    def _next_forget_stability(self, d: float, s: float, r: float) -> float:
        forgotten = (
            self.w[11]
            * math.pow(d, -self.w[12])
            * (math.pow(s + 1.0, self.w[13]) - 1.0)
            * math.exp((1.0 - r) * self.w[14])
        )
        # A lapse never makes memory more stable than it was
        return max(0.1, min(s, forgotten))


def _clamp_difficulty(d: float) -> float:
    return max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, d))


def rating_from_attempt(
    is_correct: bool,
    time_taken_ms: float | None = None,
    expected_time_ms: float | None = None,
    hints_used: int = 0,
) -> int:
    """
    Convert a response to an FSRS grade (1-4).

    Factors:
    - Correctness (primary)
    - Hint usage
    - Response time relative to expected
    """
    if not is_correct:
        return GRADE_AGAIN
    if hints_used > 0:
        return GRADE_HARD
    if not time_taken_ms or not expected_time_ms:
        return GRADE_GOOD

    time_ratio = time_taken_ms / expected_time_ms
    if time_ratio < 0.5:
        return GRADE_EASY
    elif time_ratio < 1.5:
        return GRADE_GOOD
    else:
        return GRADE_HARD
