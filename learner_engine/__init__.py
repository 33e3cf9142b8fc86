"""
Learner Engine - adaptive learner modeling.

Estimates what a student knows and decides what they should see next:
- adaptive: IRT ability estimation and the orchestrator
- learning: Bayesian Knowledge Tracing per topic
- scheduling: SM-2 and FSRS review scheduling
- core: shared state records, mastery classification, errors
"""

__version__ = "0.1.0"
