"""
Adaptive Orchestrator.

Composes the three models into one decision loop:
- select_next_question: BKT picks *which topic*, IRT picks *which item*
- process_answer: update ability (IRT), topic mastery (BKT) and the review
  card (SM-2/FSRS) from one attempt, and derive a recommendation

The orchestrator holds configuration only. Student state comes in as an
argument and goes out as a new StudentState inside AnswerAnalysis, so the
same inputs always give the same output and a failed write can simply be
retried.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from loguru import logger

from learner_engine.adaptive import irt
from learner_engine.config import Settings, get_settings
from learner_engine.core.exceptions import InvalidTransitionError
from learner_engine.core.mastery import (
    MasteryStatus,
    MasteryThresholds,
    classify_mastery,
    prerequisites_met,
    unmet_prerequisites,
)
from learner_engine.core.models import (
    AbilityState,
    Attempt,
    ItemResponse,
    Question,
    ReviewCard,
    StudentState,
)
from learner_engine.learning.knowledge_tracing import (
    BKTParameters,
    KnowledgeTracer,
    suggest_next_topic,
)
from learner_engine.scheduling import ReviewScheduler, get_scheduler
from learner_engine.scheduling.sm2 import SM2Scheduler


class Recommendation(str, Enum):
    """What the student should do after an answer."""

    CONTINUE_TOPIC = "continue_topic"
    SWITCH_TOPIC = "switch_topic"
    REVIEW_WEAK_TOPIC = "review_weak_topic"
    REMEDIATE_PREREQUISITE = "remediate_prerequisite"


@dataclass(frozen=True)
class OrchestratorConfig:
    """Tuning values for topic selection, ability estimation and recommendations."""

    thresholds: MasteryThresholds = field(default_factory=MasteryThresholds)
    learning_zone: tuple[float, float] = (0.2, 0.8)
    weak_topic_threshold: float = 0.3
    mle_min_responses: int = 5
    mle_max_iter: int = 10
    mle_tolerance: float = 0.001
    eap_points: int = 40
    prior_mean: float = 0.0
    prior_sd: float = 1.0
    theta_min: float = irt.THETA_MIN
    theta_max: float = irt.THETA_MAX
    topic_prior: float = 0.1
    scaffold_min_difficulty: float = 2.0
    scaffold_mastery_threshold: float = 0.4

    @classmethod
    def from_settings(cls, settings: Settings) -> OrchestratorConfig:
        return cls(
            thresholds=MasteryThresholds(
                mastered=settings.mastery_threshold,
                prerequisite=settings.prerequisite_threshold,
            ),
            learning_zone=(settings.learning_zone_low, settings.learning_zone_high),
            weak_topic_threshold=settings.weak_topic_threshold,
            mle_min_responses=settings.irt_mle_min_responses,
            mle_max_iter=settings.irt_mle_max_iter,
            mle_tolerance=settings.irt_mle_tolerance,
            eap_points=settings.irt_eap_points,
            prior_mean=settings.irt_prior_mean,
            prior_sd=settings.irt_prior_sd,
            theta_min=settings.irt_theta_min,
            theta_max=settings.irt_theta_max,
            topic_prior=settings.bkt_prior,
            scaffold_min_difficulty=settings.scaffold_min_difficulty,
            scaffold_mastery_threshold=settings.scaffold_mastery_threshold,
        )


@dataclass(frozen=True)
class AnswerAnalysis:
    """Composite result of processing one answer."""

    question_id: str
    topic_id: str
    ability: AbilityState
    previous_theta: float
    estimator: str  # "eap" or "mle"
    mastery: float
    previous_mastery: float
    card: ReviewCard
    rating: int
    recommendation: Recommendation
    recommended_topic_id: str | None
    state: StudentState
    should_scaffold: bool = False

    @property
    def mastery_delta(self) -> float:
        return self.mastery - self.previous_mastery

    @property
    def ability_delta(self) -> float:
        return self.ability.theta - self.previous_theta


class AdaptiveOrchestrator:
    """
    Main orchestration layer over IRT, BKT and spaced repetition.

    Usage:
        engine = AdaptiveOrchestrator.from_settings()
        question = engine.select_next_question(state, bank, now=now)
        analysis = engine.process_answer(state, question, attempt)
        persist(analysis.state)
    """

    def __init__(
        self,
        config: OrchestratorConfig | None = None,
        scheduler: ReviewScheduler | None = None,
        tracer: KnowledgeTracer | None = None,
    ):
        self.config = config or OrchestratorConfig()
        self.scheduler = scheduler or SM2Scheduler()
        self.tracer = tracer or KnowledgeTracer(
            params=BKTParameters(p_init=self.config.topic_prior)
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> AdaptiveOrchestrator:
        settings = settings or get_settings()
        tracer = KnowledgeTracer(
            params=BKTParameters(
                p_init=settings.bkt_prior,
                p_learn=settings.bkt_learn,
                p_guess=settings.bkt_guess,
                p_slip=settings.bkt_slip,
            ),
            use_question_type=settings.bkt_use_question_type,
            decay_rate=settings.bkt_decay_rate,
        )
        return cls(
            config=OrchestratorConfig.from_settings(settings),
            scheduler=get_scheduler(settings=settings),
            tracer=tracer,
        )

    # ========================================================================
    # QUESTION SELECTION
    # ========================================================================

    def select_next_question(
        self,
        state: StudentState,
        bank: Sequence[Question],
        now: datetime | None = None,
    ) -> Question | None:
        """
        Select the next question for a student.

        1. Keep unseen questions, plus seen ones whose review card is due
           at `now` (no due check when `now` is None)
        2. Drop questions whose prerequisites are not met, unless that
           would leave nothing
        3. Pick a topic: closest to 0.5 among topics in the learning zone,
           else the least-practiced topic
        4. Pick the most informative item in that topic at the current theta

        Returns:
            The chosen question, or None when nothing is available
        """
        candidates = [q for q in bank if self._is_available(state, q, now)]
        if not candidates:
            logger.debug("No unseen or due questions in bank")
            return None

        unlocked = [
            q
            for q in candidates
            if prerequisites_met(q.prerequisites, state.mastery, self.config.thresholds)
        ]
        if unlocked:
            candidates = unlocked
        else:
            logger.debug("All candidate questions are gated; ignoring prerequisites")

        topic_id = self._choose_topic(state, candidates)
        in_topic = [q for q in candidates if q.topic_id == topic_id]
        question = irt.select_next_item(state.ability.theta, in_topic)

        if question is None:
            logger.debug(f"No item in topic {topic_id} is informative at theta={state.ability.theta:.2f}")
        else:
            logger.info(
                f"Selected {question.id} (topic={topic_id}, theta={state.ability.theta:.2f}, "
                f"mastery={self._mastery(state, topic_id):.2f})"
            )
        return question

    def _is_available(self, state: StudentState, question: Question, now: datetime | None) -> bool:
        if question.id not in state.seen_question_ids:
            return True
        card = state.cards.get(question.id)
        return now is not None and card is not None and card.is_due(now)

    def _choose_topic(self, state: StudentState, candidates: Sequence[Question]) -> str:
        topics = list(dict.fromkeys(q.topic_id for q in candidates))

        low, high = self.config.learning_zone
        in_zone = [t for t in topics if low <= self._mastery(state, t) <= high]
        if in_zone:
            return suggest_next_topic(state.mastery, in_zone, self.config.topic_prior)

        # min() keeps the first topic on ties
        return min(topics, key=state.practice_count)

    def _mastery(self, state: StudentState, topic_id: str) -> float:
        return state.topic_mastery(topic_id, self.config.topic_prior)

    # ========================================================================
    # ANSWER PROCESSING
    # ========================================================================

    def process_answer(
        self,
        state: StudentState,
        question: Question,
        attempt: Attempt,
    ) -> AnswerAnalysis:
        """
        Update ability, topic mastery and the review card from one attempt.

        The three updates are independent of each other; each reads only
        the prior state. The attempt timestamp is used as "now" everywhere.

        Args:
            state: Student state before the answer
            question: The answered question
            attempt: The submitted attempt

        Returns:
            AnswerAnalysis with the updated StudentState and a recommendation
        """
        topic_id = question.topic_id

        ability, estimator = self._update_ability(state, question, attempt)

        previous_mastery = self._mastery(state, topic_id)
        mastery = self.tracer.trace(
            previous_mastery,
            attempt,
            question_type=question.question_type,
            last_practiced=state.last_practiced.get(topic_id),
            expected_time_ms=question.expected_time_ms,
        )

        card = state.cards.get(question.id) or self.scheduler.new_card(question.id)
        rating = self.scheduler.rating_from_attempt(attempt, question.expected_time_ms)
        card = self.scheduler.schedule(card, rating, attempt.timestamp)

        new_state = replace(
            state,
            ability=ability,
            mastery={**state.mastery, topic_id: mastery},
            cards={**state.cards, question.id: card},
            responses=state.responses + (ItemResponse(question.item, attempt.is_correct),),
            practice_counts={**state.practice_counts, topic_id: state.practice_count(topic_id) + 1},
            last_practiced={**state.last_practiced, topic_id: attempt.timestamp},
            seen_question_ids=state.seen_question_ids | {question.id},
        )

        recommendation, target = self.recommend(new_state, question, attempt)
        scaffold = self.should_scaffold(question, attempt, previous_mastery)

        logger.info(
            f"Answer {question.id}: correct={attempt.is_correct}, "
            f"theta {state.ability.theta:.2f}->{ability.theta:.2f} ({estimator}), "
            f"mastery {previous_mastery:.2f}->{mastery:.2f}, "
            f"next review in {card.interval_days}d, {recommendation.value}, scaffold={scaffold}"
        )

        return AnswerAnalysis(
            question_id=question.id,
            topic_id=topic_id,
            ability=ability,
            previous_theta=state.ability.theta,
            estimator=estimator,
            mastery=mastery,
            previous_mastery=previous_mastery,
            card=card,
            rating=rating,
            recommendation=recommendation,
            recommended_topic_id=target,
            state=new_state,
            should_scaffold=scaffold,
        )

    def _update_ability(
        self,
        state: StudentState,
        question: Question,
        attempt: Attempt,
    ) -> tuple[AbilityState, str]:
        cfg = self.config
        responses = state.responses + (ItemResponse(question.item, attempt.is_correct),)

        if len(state.responses) >= cfg.mle_min_responses:
            theta = irt.update_ability_mle(
                state.ability.theta,
                responses,
                max_iter=cfg.mle_max_iter,
                tol=cfg.mle_tolerance,
                theta_min=cfg.theta_min,
                theta_max=cfg.theta_max,
            )
            info = irt.total_information(theta, (r.item for r in responses))
            se = 1.0 / math.sqrt(info) if info > 0 else state.ability.standard_error
            return AbilityState(theta=theta, standard_error=se), "mle"

        estimate = irt.update_ability_eap(
            responses,
            prior_mean=cfg.prior_mean,
            prior_sd=cfg.prior_sd,
            points=cfg.eap_points,
            theta_min=cfg.theta_min,
            theta_max=cfg.theta_max,
        )
        return AbilityState(theta=estimate.ability, standard_error=estimate.standard_error), "eap"

    # ========================================================================
    # RECOMMENDATIONS
    # ========================================================================

    def recommend(
        self,
        state: StudentState,
        question: Question,
        attempt: Attempt,
    ) -> tuple[Recommendation, str | None]:
        """
        Derive a recommendation from the post-answer state.

        1. Wrong answer with an unmet prerequisite -> remediate that prerequisite
        2. Current topic mastered -> review the weakest other topic if one
           is below the weak threshold, else switch topic
        3. Otherwise keep practicing the current topic

        Returns:
            (recommendation, topic the recommendation points at)
        """
        cfg = self.config
        topic_id = question.topic_id

        if not attempt.is_correct:
            unmet = unmet_prerequisites(question.prerequisites, state.mastery, cfg.thresholds)
            if unmet:
                return Recommendation.REMEDIATE_PREREQUISITE, unmet[0]

        if self._mastery(state, topic_id) >= cfg.thresholds.mastered:
            weak = self.weak_topics(state, exclude=topic_id)
            if weak:
                return Recommendation.REVIEW_WEAK_TOPIC, weak[0]
            others = [
                t
                for t in state.mastery
                if t != topic_id and state.mastery[t] < cfg.thresholds.mastered
            ]
            return Recommendation.SWITCH_TOPIC, suggest_next_topic(
                state.mastery, others, cfg.topic_prior
            )

        return Recommendation.CONTINUE_TOPIC, topic_id

    def should_scaffold(self, question: Question, attempt: Attempt, previous_mastery: float) -> bool:
        """
        Whether a wrong answer should be followed by easier, scaffolded questions.

        Correct answers and trivial questions (author difficulty at or below
        scaffold_min_difficulty) never scaffold. Otherwise a wrong answer
        scaffolds when the topic was weak before the answer or the question
        ships its own scaffold questions. Questions without an author
        difficulty use their IRT b on the 1-10 scale.
        """
        if attempt.is_correct:
            return False
        difficulty = question.author_difficulty
        if difficulty is None:
            difficulty = irt.irt_to_difficulty(question.item.difficulty)
        if difficulty <= self.config.scaffold_min_difficulty:
            return False
        if previous_mastery < self.config.scaffold_mastery_threshold:
            return True
        return bool(question.scaffold_question_ids)

    def weak_topics(self, state: StudentState, exclude: str | None = None) -> list[str]:
        """Practiced topics below the weak threshold, weakest first."""
        weak = [
            t
            for t, m in state.mastery.items()
            if t != exclude and state.practice_count(t) > 0 and m < self.config.weak_topic_threshold
        ]
        return sorted(weak, key=lambda t: state.mastery[t])

    def topic_status(
        self,
        state: StudentState,
        topic_id: str,
        prerequisites: Sequence[str] = (),
    ) -> MasteryStatus:
        """Locked / unlocked / in progress / mastered for one topic."""
        return classify_mastery(
            self._mastery(state, topic_id),
            state.practice_count(topic_id),
            is_unlocked=prerequisites_met(prerequisites, state.mastery, self.config.thresholds),
            thresholds=self.config.thresholds,
        )

    def optimal_difficulty(self, state: StudentState, topic_id: str) -> float:
        """
        Suggested author-scale (1-10) difficulty for the student on a topic.

        Slightly above current ability, or below it while topic mastery is low.
        """
        target = state.ability.theta + 0.3
        if self._mastery(state, topic_id) < 0.3:
            target = state.ability.theta - 0.5
        return max(1.0, min(10.0, irt.irt_to_difficulty(target)))


# ============================================================================
# INTERACTION STATE MACHINE
# ============================================================================


class InteractionPhase(str, Enum):
    """Phase of a single question/answer round."""

    IDLE = "idle"
    QUESTION_SELECTED = "question_selected"
    ANSWER_SUBMITTED = "answer_submitted"
    STATE_UPDATED = "state_updated"


_TRANSITIONS: dict[InteractionPhase, InteractionPhase] = {
    InteractionPhase.IDLE: InteractionPhase.QUESTION_SELECTED,
    InteractionPhase.QUESTION_SELECTED: InteractionPhase.ANSWER_SUBMITTED,
    InteractionPhase.ANSWER_SUBMITTED: InteractionPhase.STATE_UPDATED,
    InteractionPhase.STATE_UPDATED: InteractionPhase.IDLE,
}


class InteractionSession:
    """
    Drives one student through select -> answer -> update rounds.

    Holds the current StudentState between rounds and refuses calls made
    out of order. Persisting `state` after `commit()` is the caller's job.

    Usage:
        session = InteractionSession(engine, state)
        question = session.select(bank, now=now)
        analysis = session.submit(attempt)
        state = session.commit()
    """

    def __init__(self, orchestrator: AdaptiveOrchestrator, state: StudentState):
        self.orchestrator = orchestrator
        self.state = state
        self.phase = InteractionPhase.IDLE
        self.question: Question | None = None
        self.analysis: AnswerAnalysis | None = None

    def _advance(self, expected: InteractionPhase) -> None:
        if self.phase != expected:
            raise InvalidTransitionError(
                f"Cannot move to {_TRANSITIONS[expected].value} from {self.phase.value}"
            )
        self.phase = _TRANSITIONS[expected]

    def select(self, bank: Sequence[Question], now: datetime | None = None) -> Question | None:
        """Select the next question. Stays IDLE when the bank has nothing to offer."""
        if self.phase != InteractionPhase.IDLE:
            raise InvalidTransitionError(f"Cannot select a question while {self.phase.value}")
        question = self.orchestrator.select_next_question(self.state, bank, now=now)
        if question is not None:
            self.question = question
            self._advance(InteractionPhase.IDLE)
        return question

    def submit(self, attempt: Attempt) -> AnswerAnalysis:
        """Record the answer to the selected question and update the model state."""
        if self.phase != InteractionPhase.QUESTION_SELECTED:
            raise InvalidTransitionError(f"Cannot submit an answer while {self.phase.value}")
        # A failed update leaves the question selected so the answer can be resubmitted
        analysis = self.orchestrator.process_answer(self.state, self.question, attempt)
        self._advance(InteractionPhase.QUESTION_SELECTED)
        self._advance(InteractionPhase.ANSWER_SUBMITTED)
        self.analysis = analysis
        return analysis

    def commit(self) -> StudentState:
        """Adopt the updated state and return to IDLE."""
        self._advance(InteractionPhase.STATE_UPDATED)
        self.state = self.analysis.state
        self.question = None
        self.analysis = None
        return self.state
