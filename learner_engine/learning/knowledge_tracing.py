"""
Bayesian Knowledge Tracing (BKT).

Tracks per-topic mastery probability with Bayes' theorem:
- P(correct | mastered)     = 1 - slip
- P(correct | not mastered) = guess

After observing a response the posterior becomes the new prior. An
optional learning transition P(T) models learning from the practice
opportunity itself. Results are clamped to [0.01, 0.99] because a
probability of exactly 0 or 1 can never be updated again.

The KnowledgeTracer adds the attempt-level evidence adjustments used by
the orchestrator: question-type guess/slip presets, forgetting decay,
hint and response-time adjustments.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import datetime

from loguru import logger

from learner_engine.core.exceptions import InvalidProbabilityError
from learner_engine.core.models import (
    DEFAULT_TOPIC_PRIOR,
    MASTERY_CEILING,
    MASTERY_FLOOR,
    Attempt,
    QuestionType,
)

SECONDS_PER_DAY = 86400.0


def clamp_mastery(value: float) -> float:
    """Clamp a mastery probability to [0.01, 0.99]."""
    return max(MASTERY_FLOOR, min(MASTERY_CEILING, value))


def _check_unit(name: str, value: float, *, open_interval: bool = False) -> None:
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidProbabilityError(f"{name} must be a finite number, got {value!r}")
    if open_interval and not 0 < value < 1:
        raise InvalidProbabilityError(f"{name} must be in (0, 1), got {value}")
    if not open_interval and not 0 <= value < 1:
        raise InvalidProbabilityError(f"{name} must be in [0, 1), got {value}")


# =============================================================================
# Core Update
# =============================================================================


def update_mastery(
    prior_mastery: float,
    is_correct: bool,
    slip: float = 0.1,
    guess: float = 0.2,
    learn: float = 0.0,
) -> float:
    """
    Bayesian posterior mastery given one observed response.

    Correct:   p(1-s) / (p(1-s) + (1-p)g)
    Incorrect: p*s / (p*s + (1-p)(1-g))

    Args:
        prior_mastery: Current mastery probability, in (0, 1)
        is_correct: Observed response
        slip: P(incorrect | mastered)
        guess: P(correct | not mastered); vary by question type
        learn: P(learning transition) applied after the posterior (0 disables)

    Returns:
        Posterior mastery clamped to [0.01, 0.99]
    """
    _check_unit("prior_mastery", prior_mastery, open_interval=True)
    _check_unit("slip", slip)
    _check_unit("guess", guess)
    _check_unit("learn", learn)

    p = prior_mastery
    if is_correct:
        numerator = p * (1.0 - slip)
        denominator = numerator + (1.0 - p) * guess
    else:
        numerator = p * slip
        denominator = numerator + (1.0 - p) * (1.0 - guess)

    # denominator > 0: p is in (0, 1) and slip, guess are < 1
    posterior = numerator / denominator

    if learn:
        posterior = posterior + (1.0 - posterior) * learn

    return clamp_mastery(posterior)


def suggest_next_topic(
    mastery_map: Mapping[str, float],
    candidate_topics: Sequence[str],
    default_prior: float = DEFAULT_TOPIC_PRIOR,
) -> str | None:
    """
    Pick the topic whose mastery is closest to 0.5.

    0.5 is the point of maximal uncertainty and learning value. Topics
    missing from the map read as the low prior, so unpracticed topics are
    not mistaken for topics near the boundary. Ties go to input order.
    """
    best: str | None = None
    best_distance = math.inf

    for topic_id in candidate_topics:
        distance = abs(mastery_map.get(topic_id, default_prior) - 0.5)
        if distance < best_distance:
            best_distance = distance
            best = topic_id

    return best


# =============================================================================
# BKT Parameters
# =============================================================================


@dataclass(frozen=True)
class BKTParameters:
    """Four-parameter BKT model."""

    p_init: float = DEFAULT_TOPIC_PRIOR  # P(L0)
    p_learn: float = 0.0  # P(T)
    p_guess: float = 0.2  # P(G)
    p_slip: float = 0.1  # P(S)

    def for_question_type(self, question_type: QuestionType) -> BKTParameters:
        """
        Guess/slip presets by question format.

        Multiple choice is easy to guess; numeric entry and proof steps
        are hard to guess but easier to slip on.
        """
        presets = {
            QuestionType.MULTIPLE_CHOICE: (0.25, 0.05),
            QuestionType.NUMERIC: (0.05, 0.15),
            QuestionType.PROOF_STEP: (0.02, 0.20),
        }
        if question_type not in presets:
            return self
        guess, slip = presets[question_type]
        return replace(self, p_guess=guess, p_slip=slip)

    def update(self, prior_mastery: float, is_correct: bool) -> float:
        return update_mastery(
            prior_mastery,
            is_correct,
            slip=self.p_slip,
            guess=self.p_guess,
            learn=self.p_learn,
        )

    def predict_correct(self, mastery: float) -> float:
        """P(correct) = P(L)(1 - slip) + (1 - P(L)) guess."""
        return mastery * (1.0 - self.p_slip) + (1.0 - mastery) * self.p_guess

    def practices_needed(self, mastery: float, target: float = 0.95) -> float:
        """
        Practice opportunities to reach target through learning transitions alone.

        Returns math.inf when p_learn is 0.
        """
        if mastery >= target:
            return 0
        if self.p_learn == 0:
            return math.inf
        n = math.log(1.0 - target) - math.log(1.0 - mastery)
        return math.ceil(n / math.log(1.0 - self.p_learn))


def is_mastered(mastery: float, threshold: float = 0.8) -> bool:
    return mastery >= threshold


# =============================================================================
# Evidence Adjustments
# =============================================================================


def apply_decay(
    mastery: float,
    days_since_practice: float,
    rate: float = 0.1,
    floor: float = DEFAULT_TOPIC_PRIOR,
) -> float:
    """
    Exponential forgetting toward a floor.

    M(t) = floor + (M - floor) * e^(-rate * t)

    Mastery already at or below the floor is left alone.
    """
    if mastery <= floor or days_since_practice <= 0 or rate <= 0:
        return mastery
    return floor + (mastery - floor) * math.exp(-rate * days_since_practice)


def adjust_for_hints(mastery: float, hints_used: int, is_correct: bool) -> float:
    """
    Discount the update when hints were used.

    A correct answer with hints is pulled toward 0.5 by 10% per hint; an
    incorrect answer despite hints loses a further 1% per hint.
    """
    if hints_used <= 0:
        return mastery
    penalty = min(1.0, 0.1 * hints_used)
    if is_correct:
        return mastery - penalty * (mastery - 0.5)
    return mastery - penalty * 0.1


def adjust_for_response_time(
    mastery: float,
    time_taken_ms: float,
    is_correct: bool,
    expected_ms: float = 30000.0,
) -> float:
    """
    Fast correct answers raise confidence in mastery; very slow ones lower it.

    Incorrect answers are left unchanged (a fast wrong answer is most
    likely careless).
    """
    if not is_correct or expected_ms <= 0 or time_taken_ms <= 0:
        return mastery
    ratio = time_taken_ms / expected_ms
    if ratio < 0.5:
        return mastery + (1.0 - mastery) * 0.05
    if ratio > 2.0:
        return mastery - mastery * 0.02
    return mastery


# =============================================================================
# Knowledge Tracer
# =============================================================================


@dataclass(frozen=True)
class KnowledgeTracer:
    """
    Attempt-level mastery update used by the orchestrator.

    Steps, in order: forgetting decay since last practice, Bayesian update
    with question-type guess/slip, hint and response-time adjustments,
    final clamp.
    """

    params: BKTParameters = BKTParameters()
    use_question_type: bool = True
    decay_rate: float = 0.1
    use_response_time: bool = True

    def trace(
        self,
        prior_mastery: float,
        attempt: Attempt,
        question_type: QuestionType = QuestionType.MULTIPLE_CHOICE,
        last_practiced: datetime | None = None,
        expected_time_ms: float = 30000.0,
    ) -> float:
        params = self.params.for_question_type(question_type) if self.use_question_type else self.params

        mastery = prior_mastery
        if last_practiced is not None and self.decay_rate > 0:
            days = (attempt.timestamp - last_practiced).total_seconds() / SECONDS_PER_DAY
            mastery = clamp_mastery(apply_decay(mastery, days, self.decay_rate))

        mastery = params.update(mastery, attempt.is_correct)
        mastery = adjust_for_hints(mastery, attempt.hints_used, attempt.is_correct)
        if self.use_response_time:
            mastery = adjust_for_response_time(
                mastery, attempt.time_taken_ms, attempt.is_correct, expected_time_ms
            )

        result = clamp_mastery(mastery)
        logger.debug(
            f"BKT {prior_mastery:.3f} -> {result:.3f} "
            f"(correct={attempt.is_correct}, guess={params.p_guess}, slip={params.p_slip})"
        )
        return result
