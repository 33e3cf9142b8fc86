"""
Unit tests for the IRT ability model.

Tests:
- 3PL response function (midpoint, monotonicity, guessing floor, overflow)
- Fisher information
- MLE and EAP ability estimation, including fallbacks
- CAT item selection
"""

import math

import pytest

from learner_engine.adaptive.irt import (
    THETA_MAX,
    AbilityEstimate,
    difficulty_to_irt,
    irt_to_difficulty,
    item_information,
    probability_correct,
    probability_correct_2pl,
    probability_correct_rasch,
    reliability_at_ability,
    select_next_item,
    total_information,
    update_ability_eap,
    update_ability_mle,
)
from learner_engine.core.exceptions import InvalidItemParametersError
from learner_engine.core.models import ItemParameters, ItemResponse, Question


def _response(difficulty: float, is_correct: bool, discrimination: float = 1.0) -> ItemResponse:
    return ItemResponse(
        item=ItemParameters(difficulty=difficulty, discrimination=discrimination),
        is_correct=is_correct,
    )


class TestProbabilityCorrect:
    """Tests for the 3PL response function."""

    def test_ability_equal_to_difficulty_is_exactly_half(self):
        """theta = b with a = 1, c = 0 gives P = 0.5."""
        assert probability_correct(0.0, ItemParameters()) == 0.5
        assert probability_correct(1.3, ItemParameters(difficulty=1.3)) == 0.5

    def test_monotone_in_ability(self):
        """Higher ability never lowers P(correct)."""
        item = ItemParameters(difficulty=0.5, discrimination=1.7, guessing=0.2)
        thetas = [-4 + 0.25 * i for i in range(33)]
        probs = [probability_correct(t, item) for t in thetas]
        assert all(a < b for a, b in zip(probs, probs[1:]))

    def test_guessing_is_lower_asymptote(self):
        item = ItemParameters(difficulty=0.0, guessing=0.25)
        assert probability_correct(-30.0, item) == pytest.approx(0.25, abs=1e-9)
        assert probability_correct(-30.0, item) >= 0.25

    def test_extreme_ability_does_not_overflow(self):
        item = ItemParameters(discrimination=3.0)
        assert probability_correct(1000.0, item) == 1.0
        assert probability_correct(-1000.0, item) == 0.0

    def test_lower_parameter_models_agree_with_3pl(self):
        assert probability_correct_2pl(0.7, 0.2, 1.5) == pytest.approx(
            probability_correct(0.7, ItemParameters(difficulty=0.2, discrimination=1.5))
        )
        assert probability_correct_rasch(-0.4, 0.6) == pytest.approx(
            probability_correct(-0.4, ItemParameters(difficulty=0.6))
        )


class TestItemParameters:
    """Tests for item parameter validation."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"discrimination": 0.0},
            {"discrimination": -1.0},
            {"guessing": 1.0},
            {"guessing": -0.1},
            {"difficulty": math.nan},
            {"difficulty": math.inf},
        ],
    )
    def test_invalid_parameters_rejected(self, kwargs):
        with pytest.raises(InvalidItemParametersError):
            ItemParameters(**kwargs)

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            ItemParameters(discrimination=0.0)


class TestInformation:
    """Tests for Fisher information."""

    def test_information_peaks_at_difficulty(self):
        item = ItemParameters(difficulty=1.0)
        assert item_information(1.0, item) == pytest.approx(0.25)
        assert item_information(1.0, item) > item_information(0.0, item)
        assert item_information(1.0, item) > item_information(2.0, item)

    def test_saturated_probability_gives_zero_information(self):
        assert item_information(1000.0, ItemParameters()) == 0.0

    def test_discrimination_scales_information(self):
        low = item_information(0.0, ItemParameters(discrimination=1.0))
        high = item_information(0.0, ItemParameters(discrimination=2.0))
        assert high == pytest.approx(4 * low)

    def test_total_information_is_sum(self):
        items = [ItemParameters(difficulty=b) for b in (-1.0, 0.0, 1.0)]
        expected = sum(item_information(0.3, item) for item in items)
        assert total_information(0.3, items) == pytest.approx(expected)

    def test_reliability_in_unit_interval(self):
        items = [ItemParameters(difficulty=b) for b in (-1.0, 0.0, 1.0)]
        assert 0 < reliability_at_ability(0.0, items) < 1
        assert reliability_at_ability(0.0, []) == 0.0


class TestMLE:
    """Tests for Newton-Raphson ability estimation."""

    def test_no_responses_leaves_theta_unchanged(self):
        assert update_ability_mle(0.7, []) == 0.7

    def test_balanced_responses_stay_centered(self):
        responses = [_response(-1.0, True), _response(1.0, False)]
        assert update_ability_mle(0.0, responses) == pytest.approx(0.0, abs=1e-9)

    def test_all_correct_is_clamped_to_scale(self):
        responses = [_response(0.0, True) for _ in range(5)]
        assert update_ability_mle(0.0, responses) == THETA_MAX

    def test_more_correct_answers_raise_estimate(self):
        base = [_response(-1.0, True), _response(1.0, False), _response(0.0, False)]
        better = base + [_response(0.5, True), _response(1.0, True)]
        assert update_ability_mle(0.0, better) > update_ability_mle(0.0, base)

    def test_estimate_stays_in_bounds(self):
        responses = [_response(3.5, False, discrimination=2.5) for _ in range(8)]
        theta = update_ability_mle(0.0, responses, theta_min=-3.0, theta_max=3.0)
        assert -3.0 <= theta <= 3.0


class TestEAP:
    """Tests for expected a posteriori estimation."""

    def test_empty_responses_return_prior_exactly(self):
        assert update_ability_eap([]) == AbilityEstimate(ability=0.0, standard_error=1.0)
        assert update_ability_eap([], prior_mean=0.7, prior_sd=0.5) == AbilityEstimate(0.7, 0.5)

    def test_correct_answer_moves_estimate_up(self):
        estimate = update_ability_eap([_response(0.0, True)])
        assert estimate.ability > 0
        assert estimate.standard_error < 1.0

    def test_incorrect_answer_moves_estimate_down(self):
        assert update_ability_eap([_response(0.0, False)]).ability < 0

    def test_symmetric_responses_are_centered(self):
        responses = [_response(0.0, True), _response(0.0, False)]
        assert update_ability_eap(responses).ability == pytest.approx(0.0, abs=1e-9)

    def test_all_correct_stays_finite(self):
        """Unlike MLE, EAP does not run off to the scale boundary."""
        estimate = update_ability_eap([_response(0.0, True) for _ in range(6)])
        assert 0 < estimate.ability < THETA_MAX

    def test_too_few_grid_points_rejected(self):
        with pytest.raises(ValueError):
            update_ability_eap([_response(0.0, True)], points=1)


class TestItemSelection:
    """Tests for maximum-information item selection."""

    @pytest.fixture
    def items(self):
        return [
            Question(id="easy", topic_id="t", item=ItemParameters(difficulty=-2.0)),
            Question(id="match", topic_id="t", item=ItemParameters(difficulty=0.1)),
            Question(id="hard", topic_id="t", item=ItemParameters(difficulty=2.0)),
        ]

    def test_picks_item_closest_to_ability(self, items):
        assert select_next_item(0.0, items).id == "match"
        assert select_next_item(2.2, items).id == "hard"

    def test_used_items_are_skipped(self, items):
        assert select_next_item(0.0, items, used_ids={"match"}).id in {"easy", "hard"}

    def test_all_used_returns_none(self, items):
        assert select_next_item(0.0, items, used_ids={"easy", "match", "hard"}) is None

    def test_empty_bank_returns_none(self):
        assert select_next_item(0.0, []) is None

    def test_ties_go_to_first_item(self):
        twins = [
            Question(id="first", topic_id="t"),
            Question(id="second", topic_id="t"),
        ]
        assert select_next_item(0.0, twins).id == "first"

    def test_uninformative_items_return_none(self):
        """Items whose probability saturates at theta carry no information."""
        saturated = [
            Question(id="far", topic_id="t", item=ItemParameters(difficulty=-4.0, discrimination=50.0)),
            Question(id="near", topic_id="t", item=ItemParameters(difficulty=-3.5, discrimination=50.0)),
        ]
        assert all(item_information(4.0, q.item) == 0.0 for q in saturated)
        assert select_next_item(4.0, saturated) is None

    def test_informative_item_beats_saturated_one(self):
        bank = [
            Question(id="saturated", topic_id="t", item=ItemParameters(difficulty=-4.0, discrimination=50.0)),
            Question(id="useful", topic_id="t", item=ItemParameters(difficulty=3.0)),
        ]
        assert select_next_item(4.0, bank).id == "useful"


class TestAuthoringScale:
    def test_midpoint_maps_to_zero(self):
        assert difficulty_to_irt(5.5) == pytest.approx(0.0)

    def test_conversions_are_inverse(self):
        assert irt_to_difficulty(difficulty_to_irt(8.0)) == pytest.approx(8.0)
