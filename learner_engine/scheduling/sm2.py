"""
SM-2 Spaced Repetition Scheduler.

SM-2 Grade Scale:
0 - Complete blackout, wrong response
1 - Incorrect, but upon seeing answer remembered
2 - Incorrect, but answer seemed easy to recall
3 - Correct, but with significant difficulty
4 - Correct, with some hesitation
5 - Correct, with perfect recall
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from loguru import logger

from learner_engine.core.exceptions import InvalidRatingError
from learner_engine.core.models import Attempt, CardState, ReviewCard
from learner_engine.scheduling.base import due_date_after


@dataclass(frozen=True)
class SM2Config:
    """Configuration for SM-2 algorithm."""

    initial_easiness: float = 2.5
    minimum_easiness: float = 1.3
    first_interval: int = 1  # Days for first review
    second_interval: int = 6  # Days for second review


class SM2Scheduler:
    """
    Implements the SM-2 spaced repetition algorithm.

    Each card has:
    - Easiness Factor (EF): How easy the item is (2.5 default, min 1.3)
    - Interval: Days until next review
    - Repetitions: Consecutive correct recalls
    """

    name = "sm2"

    def __init__(self, config: SM2Config | None = None):
        """
        Initialize SM-2 scheduler.

        Args:
            config: Custom configuration (uses defaults if None)
        """
        self.config = config or SM2Config()

    def new_card(self, card_id: str) -> ReviewCard:
        return ReviewCard(card_id=card_id, ease_factor=self.config.initial_easiness)

    def schedule(self, card: ReviewCard, rating: int, now: datetime) -> ReviewCard:
        """
        Calculate next review based on grade.

        Args:
            card: Current card state
            rating: SM-2 grade (0-5)
            now: Review timestamp

        Returns:
            Updated card with new interval and due date
        """
        if isinstance(rating, bool) or not isinstance(rating, int) or not 0 <= rating <= 5:
            raise InvalidRatingError(f"SM-2 rating must be an integer 0-5, got {rating!r}")

        # EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
        ef_delta = 0.1 - (5 - rating) * (0.08 + (5 - rating) * 0.02)
        new_ef = max(self.config.minimum_easiness, card.ease_factor + ef_delta)

        lapses = card.lapses
        if rating < 3:
            # Failed - reset to beginning
            new_repetitions = 0
            new_interval = self.config.first_interval
            if card.repetitions > 0:
                lapses += 1
            state = CardState.RELEARNING if card.state == CardState.REVIEW else CardState.LEARNING
        else:
            new_repetitions = card.repetitions + 1
            if new_repetitions == 1:
                new_interval = self.config.first_interval
            elif new_repetitions == 2:
                new_interval = self.config.second_interval
            else:
                new_interval = max(1, round(card.interval_days * new_ef))
            state = CardState.REVIEW

        updated = replace(
            card,
            ease_factor=new_ef,
            interval_days=new_interval,
            repetitions=new_repetitions,
            due_date=due_date_after(now, new_interval),
            last_review=now,
            lapses=lapses,
            state=state,
        )

        logger.debug(
            f"SM-2 review {card.card_id}: grade={rating}, ef={new_ef:.2f}, "
            f"interval={new_interval}d"
        )
        return updated

    def rating_from_attempt(self, attempt: Attempt, expected_time_ms: float | None = None) -> int:
        return quality_from_attempt(
            attempt.is_correct,
            time_taken_ms=attempt.time_taken_ms or None,
            expected_time_ms=expected_time_ms,
            hints_used=attempt.hints_used,
            confidence=attempt.confidence,
        )


def quality_from_attempt(
    is_correct: bool,
    time_taken_ms: float | None = None,
    expected_time_ms: float | None = None,
    hints_used: int = 0,
    confidence: int | None = None,
) -> int:
    """
    Convert a response to an SM-2 grade.

    Without any hesitation signal the mapping is binary: correct -> 4,
    incorrect -> 2. Hints, self-reported confidence (1-5) and response time
    relative to the expected time refine it.

    Returns:
        Grade 0-5
    """
    if not is_correct:
        # Incorrect responses: 0-2
        if hints_used > 2:
            return 0
        if hints_used > 0:
            return 1
        return 2

    # Correct responses: 3-5
    if hints_used > 0:
        return 3  # Correct but needed help
    if confidence is not None:
        if confidence >= 4:
            return 5
        return 4 if confidence == 3 else 3
    if time_taken_ms and expected_time_ms:
        ratio = time_taken_ms / expected_time_ms
        if ratio > 2:
            return 3  # Correct but struggled
        if ratio > 1:
            return 4  # Correct with some hesitation
        return 5  # Quick and correct = perfect recall
    return 4
