"""
Item Response Theory (IRT) Ability Model.

Used to:
1. Calculate the probability of a correct answer (1PL / 2PL / 3PL)
2. Measure how informative a question is at a given ability
3. Estimate student ability (theta) by MLE or EAP
4. Select the most informative next item (computerized adaptive testing)

3PL model:
    P(theta) = c + (1 - c) / (1 + e^(-a(theta - b)))

Where:
    theta = student ability
    a = discrimination
    b = difficulty
    c = guessing (pseudo-chance lower asymptote)

All functions are pure. Item parameters are validated when ItemParameters
is constructed, so nothing here re-checks them.
"""

from __future__ import annotations

import math
from collections.abc import Collection, Iterable, Sequence
from dataclasses import dataclass

from loguru import logger

from learner_engine.core.models import ItemParameters, ItemResponse, Question

THETA_MIN = -4.0
THETA_MAX = 4.0


@dataclass(frozen=True)
class AbilityEstimate:
    """Posterior ability estimate returned by EAP."""

    ability: float
    standard_error: float


# =============================================================================
# Response Functions
# =============================================================================


def _logistic(x: float) -> float:
    # Split on sign so math.exp never overflows
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def probability_correct(theta: float, item: ItemParameters) -> float:
    """
    3-parameter logistic probability of a correct response.

    Args:
        theta: Student ability
        item: IRT item parameters

    Returns:
        P(correct) in (c, 1)
    """
    a, b, c = item.discrimination, item.difficulty, item.guessing
    return c + (1.0 - c) * _logistic(a * (theta - b))


def probability_correct_2pl(
    theta: float,
    difficulty: float,
    discrimination: float = 1.0,
) -> float:
    """2PL probability (no guessing correction)."""
    return _logistic(discrimination * (theta - difficulty))


def probability_correct_rasch(theta: float, difficulty: float) -> float:
    """1PL / Rasch probability (unit discrimination, no guessing)."""
    return _logistic(theta - difficulty)


def item_information(theta: float, item: ItemParameters) -> float:
    """
    Fisher information of an item at theta.

    Information = a^2 * (p - c)^2 * q / ((1 - c)^2 * p)

    Questions are most informative when their difficulty is close to
    the student's ability. Returns 0 when p is exactly 0 or 1.
    """
    p = probability_correct(theta, item)
    if p <= 0.0 or p >= 1.0:
        return 0.0
    q = 1.0 - p
    a, c = item.discrimination, item.guessing
    return (a**2) * ((p - c) ** 2) * q / (((1.0 - c) ** 2) * p)


def total_information(theta: float, items: Iterable[ItemParameters]) -> float:
    """Sum of item information over a set of items."""
    return sum(item_information(theta, item) for item in items)


def reliability_at_ability(theta: float, items: Iterable[ItemParameters]) -> float:
    """Marginal reliability I / (I + 1) of a test at a given ability."""
    info = total_information(theta, items)
    return info / (info + 1.0)


# =============================================================================
# Ability Estimation
# =============================================================================


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def update_ability_mle(
    theta0: float,
    responses: Sequence[ItemResponse],
    max_iter: int = 10,
    tol: float = 0.001,
    theta_min: float = THETA_MIN,
    theta_max: float = THETA_MAX,
) -> float:
    """
    Maximum likelihood ability estimate via Newton-Raphson.

    Each iteration sums the first and second derivatives of the
    log-likelihood over all responses, steps theta, and clamps it to
    [theta_min, theta_max]. Stops early once |delta| < tol.

    A second derivative of exactly 0 (e.g. no responses) halts the
    iteration without updating theta.

    Args:
        theta0: Starting ability
        responses: Scored responses
        max_iter: Iteration cap
        tol: Step size below which the estimate has converged

    Returns:
        Updated ability
    """
    theta = theta0

    for iteration in range(max_iter):
        first = 0.0
        second = 0.0

        for response in responses:
            item = response.item
            p = probability_correct(theta, item)
            if p <= 0.0 or p >= 1.0:
                continue
            q = 1.0 - p
            a, c = item.discrimination, item.guessing
            u = 1.0 if response.is_correct else 0.0

            p_star = (p - c) / (1.0 - c)
            first += a * (u - p) * p_star / p
            second -= (a**2) * p_star * p_star * q / p

        if second == 0:
            logger.debug(f"MLE halted at iteration {iteration}: flat log-likelihood")
            break

        delta = first / -second
        theta = _clamp(theta + delta, theta_min, theta_max)

        if abs(delta) < tol:
            break

    return theta


def update_ability_eap(
    responses: Sequence[ItemResponse],
    prior_mean: float = 0.0,
    prior_sd: float = 1.0,
    points: int = 40,
    theta_min: float = THETA_MIN,
    theta_max: float = THETA_MAX,
) -> AbilityEstimate:
    """
    Expected a posteriori ability estimate.

    Integrates over a uniform grid spanning [theta_min, theta_max] with
    normal prior weights (not Gauss-Hermite nodes). More stable than MLE
    for short or all-correct/all-incorrect response histories.

    Returns the prior (mean, SD) unchanged when there are no responses or
    when the posterior mass underflows to zero.
    """
    if points < 2:
        raise ValueError(f"points must be >= 2, got {points}")
    if not responses:
        return AbilityEstimate(ability=prior_mean, standard_error=prior_sd)

    step = (theta_max - theta_min) / (points - 1)
    grid = [theta_min + i * step for i in range(points)]

    posterior = []
    for x in grid:
        prior_weight = math.exp(-(((x - prior_mean) / prior_sd) ** 2) / 2.0)
        posterior.append(_likelihood(x, responses) * prior_weight)

    total = sum(posterior)
    if total == 0:
        logger.debug("EAP posterior mass underflowed; returning prior")
        return AbilityEstimate(ability=prior_mean, standard_error=prior_sd)

    weights = [w / total for w in posterior]
    ability = sum(x * w for x, w in zip(grid, weights))
    variance = sum(((x - ability) ** 2) * w for x, w in zip(grid, weights))

    return AbilityEstimate(ability=ability, standard_error=math.sqrt(variance))


def _likelihood(theta: float, responses: Sequence[ItemResponse]) -> float:
    log_likelihood = 0.0
    for response in responses:
        p = probability_correct(theta, response.item)
        outcome = p if response.is_correct else 1.0 - p
        if outcome <= 0.0:
            return 0.0
        log_likelihood += math.log(outcome)
    return math.exp(log_likelihood)


# =============================================================================
# Item Selection
# =============================================================================


def select_next_item(
    theta: float,
    items: Iterable[Question],
    used_ids: Collection[str] = frozenset(),
) -> Question | None:
    """
    Pick the unused item with maximum information at theta.

    Ties go to the first item encountered. Returns None when every item
    has been used, the bank is empty, or no unused item carries any
    information at theta.
    """
    best: Question | None = None
    best_info = 0.0

    for question in items:
        if question.id in used_ids:
            continue
        info = item_information(theta, question.item)
        if info > best_info:
            best_info = info
            best = question

    return best


# =============================================================================
# Authoring Scale
# =============================================================================


def difficulty_to_irt(difficulty: float) -> float:
    """Map an author-facing 1-10 difficulty onto the IRT b scale (about -3..3)."""
    return (difficulty - 5.5) * 0.6


def irt_to_difficulty(b: float) -> float:
    """Inverse of difficulty_to_irt."""
    return b / 0.6 + 5.5
