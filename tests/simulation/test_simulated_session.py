"""
Simulated student sessions.

Students of known ability answer a synthetic bank through the full
select -> answer -> update loop. Answers are drawn from the 3PL model
with a fixed seed, so runs are reproducible.
"""

import random
from datetime import UTC, datetime, timedelta

import pytest

from learner_engine.adaptive.irt import probability_correct
from learner_engine.adaptive.orchestrator import (
    AdaptiveOrchestrator,
    InteractionPhase,
    InteractionSession,
)
from learner_engine.cli import synthetic_bank
from learner_engine.core.models import Attempt, StudentState
from learner_engine.scheduling import FSRSScheduler, SM2Scheduler

pytestmark = pytest.mark.simulation

START = datetime(2026, 1, 5, 8, 0, tzinfo=UTC)


def run_session(true_theta, steps=25, seed=11, scheduler=None):
    rng = random.Random(seed)
    bank = synthetic_bank(10, rng)
    session = InteractionSession(AdaptiveOrchestrator(scheduler=scheduler), StudentState())
    analyses = []
    now = START

    for _ in range(steps):
        question = session.select(bank)
        if question is None:
            break
        is_correct = rng.random() < probability_correct(true_theta, question.item)
        analyses.append(session.submit(Attempt(is_correct=is_correct, timestamp=now)))
        session.commit()
        now += timedelta(minutes=3)

    return session, analyses


class TestSimulatedStudents:
    def test_strong_student_estimated_high(self):
        session, _ = run_session(2.5)
        assert session.state.ability.theta > 0.5

    def test_weak_student_estimated_low(self):
        session, _ = run_session(-2.5)
        assert session.state.ability.theta < -0.5

    def test_estimates_ordered_by_true_ability(self):
        thetas = [run_session(t, seed=3)[0].state.ability.theta for t in (-2.0, 0.0, 2.0)]
        assert thetas[0] < thetas[2]

    @pytest.mark.parametrize("scheduler", [SM2Scheduler(), FSRSScheduler()])
    def test_invariants_hold_throughout(self, scheduler):
        session, analyses = run_session(0.5, steps=30, scheduler=scheduler)

        assert session.phase == InteractionPhase.IDLE
        ids = [a.question_id for a in analyses]
        assert len(ids) == len(set(ids))
        for analysis in analyses:
            assert 0.01 <= analysis.mastery <= 0.99
            assert -4.0 <= analysis.ability.theta <= 4.0
            assert analysis.card.interval_days >= 1
            assert analysis.card.due_date > analysis.card.last_review

    def test_switches_to_mle_after_five_responses(self):
        _, analyses = run_session(0.0, steps=8)
        assert [a.estimator for a in analyses] == ["eap"] * 5 + ["mle"] * 3
