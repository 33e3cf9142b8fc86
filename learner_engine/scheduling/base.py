"""
Shared scheduling contract and queue helpers.

Both SM-2 and FSRS implement ReviewScheduler:

    schedule(card, rating, now) -> ReviewCard

The review timestamp is always passed in explicitly, so the same
(card, rating, now) triple always produces the same card.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Protocol

from learner_engine.core.models import Attempt, ReviewCard


class ReviewScheduler(Protocol):
    """Interface for spaced repetition strategies."""

    name: str

    def new_card(self, card_id: str) -> ReviewCard:
        """A card that has never been reviewed."""
        ...

    def schedule(self, card: ReviewCard, rating: int, now: datetime) -> ReviewCard:
        """Return the card updated for a review with the given rating at `now`."""
        ...

    def rating_from_attempt(self, attempt: Attempt, expected_time_ms: float | None = None) -> int:
        """Map an attempt onto this scheduler's rating scale."""
        ...


def due_date_after(now: datetime, interval_days: int) -> datetime:
    return now + timedelta(days=interval_days)


def due_cards(cards: Iterable[ReviewCard], now: datetime) -> list[ReviewCard]:
    """
    Cards due at `now`, most overdue first.

    Never-scheduled cards count as due and sort ahead of everything else.
    """
    due = [card for card in cards if card.is_due(now)]
    return sorted(due, key=lambda c: (c.due_date is not None, c.due_date or now))


def overdue_factor(card: ReviewCard, now: datetime) -> float:
    """How late a review is, relative to its interval (0 when not overdue)."""
    if card.due_date is None or now <= card.due_date:
        return 0.0
    overdue_days = (now - card.due_date).total_seconds() / 86400.0
    return overdue_days / max(1, card.interval_days)


def study_load(cards: Iterable[ReviewCard], days: int, now: datetime) -> dict[str, int]:
    """
    Number of reviews falling due on each of the next `days` days.

    Keys are ISO dates starting at `now`; day windows are 24h from `now`.
    """
    cards = [card for card in cards if card.due_date is not None]
    load: dict[str, int] = {}
    for offset in range(days):
        start = now + timedelta(days=offset)
        end = start + timedelta(days=1)
        load[start.date().isoformat()] = sum(1 for card in cards if start <= card.due_date < end)
    return load
