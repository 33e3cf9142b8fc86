"""
Unit tests for the SM-2 scheduler and the shared queue helpers.

Tests:
- Interval sequence and ease factor updates
- Failure reset and lapse counting
- Rating validation
- Quality mapping from attempt signals
- due_cards / overdue_factor / study_load
"""

from dataclasses import replace
from datetime import timedelta

import pytest

from learner_engine.core.exceptions import InvalidRatingError
from learner_engine.core.models import Attempt, CardState, ReviewCard
from learner_engine.scheduling import (
    SM2Config,
    SM2Scheduler,
    due_cards,
    overdue_factor,
    quality_from_attempt,
    study_load,
)


@pytest.fixture
def scheduler():
    return SM2Scheduler()


def _review_sequence(scheduler, ratings, now):
    card = scheduler.new_card("q1")
    history = []
    for rating in ratings:
        card = scheduler.schedule(card, rating, now)
        history.append(card)
        now = card.due_date
    return history


class TestIntervals:
    """Tests for interval growth."""

    def test_first_success_is_one_day(self, scheduler, now):
        card = scheduler.schedule(scheduler.new_card("q1"), 4, now)
        assert card.repetitions == 1
        assert card.interval_days == 1
        assert card.due_date == now + timedelta(days=1)
        assert card.last_review == now
        assert card.state == CardState.REVIEW

    def test_interval_sequence(self, scheduler, now):
        """1, 6, then round(previous * EF)."""
        history = _review_sequence(scheduler, [4, 4, 4], now)
        assert [c.interval_days for c in history] == [1, 6, 15]

    def test_perfect_recall_grows_ease(self, scheduler, now):
        history = _review_sequence(scheduler, [5, 5, 5], now)
        assert [c.ease_factor for c in history] == pytest.approx([2.6, 2.7, 2.8])
        assert history[-1].interval_days == 17

    def test_due_date_strictly_after_review(self, scheduler, now):
        for rating in range(6):
            card = scheduler.schedule(scheduler.new_card("q1"), rating, now)
            assert card.due_date > now
            assert card.interval_days >= 1

    def test_long_hard_recall_run(self, scheduler, now):
        """Repeated grade 3 drains EF to its floor while intervals keep growing."""
        history = _review_sequence(scheduler, [3] * 15, now)
        intervals = [c.interval_days for c in history]

        assert intervals[:4] == [1, 6, 12, 23]
        assert all(later >= earlier for earlier, later in zip(intervals, intervals[1:]))
        assert intervals[-1] > intervals[-2]
        assert history[8].ease_factor == pytest.approx(1.3)
        assert history[-1].ease_factor == pytest.approx(1.3)
        assert all(c.repetitions == n for n, c in enumerate(history, start=1))


class TestFailure:
    """Tests for failed reviews."""

    def test_failure_resets_repetitions(self, scheduler, now):
        history = _review_sequence(scheduler, [4, 4, 4, 2], now)
        failed = history[-1]
        assert failed.repetitions == 0
        assert failed.interval_days == 1
        assert failed.lapses == 1
        assert failed.state == CardState.RELEARNING

    def test_failure_lowers_ease(self, scheduler, now):
        history = _review_sequence(scheduler, [4, 2], now)
        assert history[-1].ease_factor == pytest.approx(2.5 - 0.32)

    def test_failure_on_new_card_is_not_a_lapse(self, scheduler, now):
        card = scheduler.schedule(scheduler.new_card("q1"), 1, now)
        assert card.lapses == 0
        assert card.state == CardState.LEARNING

    def test_ease_factor_floor(self, scheduler, now):
        history = _review_sequence(scheduler, [0] * 6, now)
        assert history[-1].ease_factor == pytest.approx(1.3)

    def test_custom_minimum_ease(self, now):
        scheduler = SM2Scheduler(SM2Config(minimum_easiness=1.7))
        history = _review_sequence(scheduler, [0] * 4, now)
        assert history[-1].ease_factor == pytest.approx(1.7)


class TestValidation:
    @pytest.mark.parametrize("rating", [-1, 6, 3.5, True, "4"])
    def test_invalid_rating_rejected(self, scheduler, now, rating):
        with pytest.raises(InvalidRatingError):
            scheduler.schedule(scheduler.new_card("q1"), rating, now)

    def test_rating_error_is_value_error(self, scheduler, now):
        with pytest.raises(ValueError):
            scheduler.schedule(scheduler.new_card("q1"), 9, now)

    def test_schedule_is_deterministic(self, scheduler, now):
        card = ReviewCard(card_id="q1", ease_factor=2.2, interval_days=6, repetitions=2)
        assert scheduler.schedule(card, 3, now) == scheduler.schedule(card, 3, now)

    def test_input_card_unchanged(self, scheduler, now):
        card = scheduler.new_card("q1")
        scheduler.schedule(card, 5, now)
        assert card == scheduler.new_card("q1")


class TestQualityFromAttempt:
    """Tests for mapping attempt signals onto grades 0-5."""

    def test_binary_default(self):
        assert quality_from_attempt(True) == 4
        assert quality_from_attempt(False) == 2

    def test_hints_on_incorrect(self):
        assert quality_from_attempt(False, hints_used=1) == 1
        assert quality_from_attempt(False, hints_used=3) == 0

    def test_hints_on_correct(self):
        assert quality_from_attempt(True, hints_used=1) == 3

    def test_response_time(self):
        assert quality_from_attempt(True, time_taken_ms=10000, expected_time_ms=30000) == 5
        assert quality_from_attempt(True, time_taken_ms=45000, expected_time_ms=30000) == 4
        assert quality_from_attempt(True, time_taken_ms=90000, expected_time_ms=30000) == 3

    def test_confidence(self):
        assert quality_from_attempt(True, confidence=5) == 5
        assert quality_from_attempt(True, confidence=3) == 4
        assert quality_from_attempt(True, confidence=1) == 3

    def test_scheduler_uses_attempt(self, scheduler, now):
        assert scheduler.rating_from_attempt(Attempt(is_correct=True, timestamp=now)) == 4
        fast = Attempt(is_correct=True, timestamp=now, time_taken_ms=5000)
        assert scheduler.rating_from_attempt(fast, expected_time_ms=30000) == 5


class TestQueueHelpers:
    """Tests for due_cards, overdue_factor and study_load."""

    def test_unscheduled_card_is_due(self, now):
        assert ReviewCard(card_id="q1").is_due(now)

    def test_due_cards_ordering(self, now):
        cards = [
            ReviewCard(card_id="later", due_date=now + timedelta(days=2)),
            ReviewCard(card_id="recent", due_date=now - timedelta(hours=1)),
            ReviewCard(card_id="old", due_date=now - timedelta(days=3)),
            ReviewCard(card_id="new"),
        ]
        assert [c.card_id for c in due_cards(cards, now)] == ["new", "old", "recent"]

    def test_overdue_factor(self, now):
        card = ReviewCard(card_id="q1", interval_days=4, due_date=now - timedelta(days=2))
        assert overdue_factor(card, now) == pytest.approx(0.5)
        assert overdue_factor(replace(card, due_date=now + timedelta(days=1)), now) == 0.0

    def test_study_load(self, now):
        cards = [
            ReviewCard(card_id="a", due_date=now + timedelta(hours=3)),
            ReviewCard(card_id="b", due_date=now + timedelta(days=1, hours=1)),
            ReviewCard(card_id="c", due_date=now + timedelta(days=1, hours=5)),
            ReviewCard(card_id="d"),
        ]
        load = study_load(cards, 3, now)
        assert list(load.values()) == [1, 2, 0]
        assert next(iter(load)) == now.date().isoformat()
