"""
Mastery Classification.

The knowledge tracing model only produces probabilities. Dashboards and
the orchestrator need discrete labels, so this module maps a mastery
probability onto:
- MasteryStatus: locked / unlocked / in_progress / mastered
- an integer 0-5 mastery level as shown by consuming dashboards

All cut-offs live in MasteryThresholds so they can be tuned without
touching the model.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum

from learner_engine.core.models import DEFAULT_TOPIC_PRIOR


class MasteryStatus(str, Enum):
    """Topic status derived from mastery probability and gating."""

    LOCKED = "locked"  # Prerequisites not yet satisfied
    UNLOCKED = "unlocked"  # Available, never practiced
    IN_PROGRESS = "in_progress"  # Practiced, below mastery
    MASTERED = "mastered"  # At or above mastery threshold

    @property
    def display_name(self) -> str:
        """Human-readable name."""
        return self.value.replace("_", " ").title()

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            MasteryStatus.LOCKED: "dim",
            MasteryStatus.UNLOCKED: "white",
            MasteryStatus.IN_PROGRESS: "yellow",
            MasteryStatus.MASTERED: "green",
        }[self]


@dataclass(frozen=True)
class MasteryThresholds:
    """
    Threshold bands for mastery classification.

    level_bands are the upper bounds of levels 1-3; level 4 runs up to
    `mastered`, and level 5 is anything at or above it.
    """

    mastered: float = 0.8
    prerequisite: float = 0.5
    level_bands: tuple[float, float, float] = (0.2, 0.4, 0.6)


DEFAULT_THRESHOLDS = MasteryThresholds()


def prerequisites_met(
    prerequisites: Iterable[str],
    mastery: Mapping[str, float],
    thresholds: MasteryThresholds = DEFAULT_THRESHOLDS,
) -> bool:
    """True when every prerequisite topic reaches the prerequisite threshold."""
    return all(
        mastery.get(topic_id, DEFAULT_TOPIC_PRIOR) >= thresholds.prerequisite
        for topic_id in prerequisites
    )


def unmet_prerequisites(
    prerequisites: Iterable[str],
    mastery: Mapping[str, float],
    thresholds: MasteryThresholds = DEFAULT_THRESHOLDS,
) -> list[str]:
    """Prerequisite topics still below threshold, in input order."""
    return [
        topic_id
        for topic_id in prerequisites
        if mastery.get(topic_id, DEFAULT_TOPIC_PRIOR) < thresholds.prerequisite
    ]


def classify_mastery(
    mastery: float,
    practice_count: int,
    is_unlocked: bool = True,
    thresholds: MasteryThresholds = DEFAULT_THRESHOLDS,
) -> MasteryStatus:
    """
    Classify a topic.

    Args:
        mastery: BKT mastery probability
        practice_count: Attempts recorded for the topic
        is_unlocked: Whether prerequisite gating lets the topic through
        thresholds: Classification bands

    Returns:
        MasteryStatus for the topic
    """
    if not is_unlocked:
        return MasteryStatus.LOCKED
    if practice_count == 0:
        return MasteryStatus.UNLOCKED
    if mastery >= thresholds.mastered:
        return MasteryStatus.MASTERED
    return MasteryStatus.IN_PROGRESS


def mastery_level(
    mastery: float,
    practice_count: int,
    thresholds: MasteryThresholds = DEFAULT_THRESHOLDS,
) -> int:
    """
    Convert a mastery probability to the 0-5 dashboard level.

    0 means never practiced; 5 means at or above the mastery threshold.
    """
    if practice_count == 0:
        return 0
    if mastery >= thresholds.mastered:
        return 5
    level = 1
    for upper in thresholds.level_bands:
        if mastery < upper:
            return level
        level += 1
    return 4
