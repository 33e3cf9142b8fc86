"""
Adaptive Module - Ability estimation and question orchestration.

Components:
- irt: IRT response functions, MLE/EAP ability estimation, CAT item selection
- orchestrator: Composes IRT, BKT and scheduling into one decision loop

Pipeline:
    StudentState + bank -> select_next_question -> Question
    StudentState + Question + Attempt -> process_answer -> AnswerAnalysis
"""

from learner_engine.adaptive.irt import (
    AbilityEstimate,
    difficulty_to_irt,
    irt_to_difficulty,
    item_information,
    probability_correct,
    select_next_item,
    total_information,
    update_ability_eap,
    update_ability_mle,
)
from learner_engine.adaptive.orchestrator import (
    AdaptiveOrchestrator,
    AnswerAnalysis,
    InteractionPhase,
    InteractionSession,
    OrchestratorConfig,
    Recommendation,
)

__all__ = [
    # IRT
    "AbilityEstimate",
    "difficulty_to_irt",
    "irt_to_difficulty",
    "item_information",
    "probability_correct",
    "select_next_item",
    "total_information",
    "update_ability_eap",
    "update_ability_mle",
    # Orchestration
    "AdaptiveOrchestrator",
    "AnswerAnalysis",
    "InteractionPhase",
    "InteractionSession",
    "OrchestratorConfig",
    "Recommendation",
]
