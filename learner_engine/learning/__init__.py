"""
Learning: per-topic knowledge tracing.

- knowledge_tracing: Bayesian Knowledge Tracing update, topic suggestion,
  question-type presets and evidence adjustments
"""

from learner_engine.learning.knowledge_tracing import (
    BKTParameters,
    KnowledgeTracer,
    apply_decay,
    clamp_mastery,
    is_mastered,
    suggest_next_topic,
    update_mastery,
)

__all__ = [
    "BKTParameters",
    "KnowledgeTracer",
    "apply_decay",
    "clamp_mastery",
    "is_mastered",
    "suggest_next_topic",
    "update_mastery",
]
