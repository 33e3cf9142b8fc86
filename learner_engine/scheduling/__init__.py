"""
Spaced repetition scheduling.

Two interchangeable strategies share the ReviewScheduler contract:
- sm2: SuperMemo 2 (quality 0-5, ease factor)
- fsrs: Free Spaced Repetition Scheduler v4 (rating 1-4, stability/difficulty)
"""

from __future__ import annotations

from learner_engine.config import Settings, get_settings
from learner_engine.scheduling.base import ReviewScheduler, due_cards, overdue_factor, study_load
from learner_engine.scheduling.fsrs import FSRSParameters, FSRSScheduler, retrievability
from learner_engine.scheduling.sm2 import SM2Config, SM2Scheduler, quality_from_attempt


def get_scheduler(name: str | None = None, settings: Settings | None = None) -> ReviewScheduler:
    """
    Build the configured scheduler.

    Args:
        name: "sm2" or "fsrs" (settings.scheduler_algorithm if None)
        settings: Source of tuning values (cached settings if None)
    """
    settings = settings or get_settings()
    name = name or settings.scheduler_algorithm

    if name == "sm2":
        return SM2Scheduler(
            SM2Config(
                initial_easiness=settings.sm2_initial_ease,
                minimum_easiness=settings.sm2_minimum_ease,
            )
        )
    if name == "fsrs":
        return FSRSScheduler(
            FSRSParameters.from_weights(
                settings.fsrs_weights,
                request_retention=settings.fsrs_request_retention,
                maximum_interval=settings.fsrs_maximum_interval,
            )
        )
    raise ValueError(f"Unknown scheduler {name!r} (expected 'sm2' or 'fsrs')")


__all__ = [
    "FSRSParameters",
    "FSRSScheduler",
    "ReviewScheduler",
    "SM2Config",
    "SM2Scheduler",
    "due_cards",
    "get_scheduler",
    "overdue_factor",
    "quality_from_attempt",
    "retrievability",
    "study_load",
]
