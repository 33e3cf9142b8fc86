"""
Configuration settings for the learner engine.

Uses Pydantic Settings for environment variable management with .env file support.
Every tunable constant of the models (priors, thresholds, FSRS weights) is
exposed here; the model functions themselves take explicit arguments.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Published FSRS v4 default weights (w0..w16)
FSRS_V4_WEIGHTS: tuple[float, ...] = (
    0.4,    # w0: initial stability for Again
    0.6,    # w1: initial stability for Hard
    2.4,    # w2: initial stability for Good
    5.8,    # w3: initial stability for Easy
    4.93,   # w4: initial difficulty mean
    0.94,   # w5: initial difficulty per grade
    0.86,   # w6: difficulty change per grade
    0.01,   # w7: difficulty mean reversion
    1.49,   # w8: recall stability scale
    0.14,   # w9: recall stability saturation
    0.94,   # w10: recall stability from retrievability
    2.18,   # w11: lapse stability scale
    0.05,   # w12: lapse stability difficulty exponent
    0.34,   # w13: lapse stability stability exponent
    1.26,   # w14: lapse stability from retrievability
    0.29,   # w15: hard penalty
    2.61,   # w16: easy bonus
)


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LEARNER_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # IRT Ability Model
    # ========================================
    irt_theta_min: float = Field(default=-4.0, description="Lower bound of the ability scale")
    irt_theta_max: float = Field(default=4.0, description="Upper bound of the ability scale")
    irt_mle_max_iter: int = Field(default=10, description="Newton-Raphson iteration cap")
    irt_mle_tolerance: float = Field(default=0.001, description="Newton-Raphson step tolerance")
    irt_mle_min_responses: int = Field(
        default=5,
        description="Prior responses required before MLE replaces EAP",
    )
    irt_eap_points: int = Field(default=40, description="EAP quadrature grid size")
    irt_prior_mean: float = Field(default=0.0, description="EAP normal prior mean")
    irt_prior_sd: float = Field(default=1.0, description="EAP normal prior SD")

    # ========================================
    # Bayesian Knowledge Tracing
    # ========================================
    bkt_prior: float = Field(default=0.1, description="Mastery prior for unseen topics")
    bkt_slip: float = Field(default=0.1, description="P(incorrect | mastered)")
    bkt_guess: float = Field(default=0.2, description="P(correct | not mastered)")
    bkt_learn: float = Field(
        default=0.0,
        description="P(transition to mastered) after a practice opportunity",
    )
    bkt_use_question_type: bool = Field(
        default=True,
        description="Use per-question-type guess/slip presets",
    )
    bkt_decay_rate: float = Field(
        default=0.1,
        description="Daily forgetting rate applied before each update (0 disables)",
    )

    # ========================================
    # Spaced Repetition
    # ========================================
    scheduler_algorithm: Literal["sm2", "fsrs"] = Field(
        default="sm2",
        description="Review scheduling strategy",
    )
    sm2_initial_ease: float = Field(default=2.5, description="Starting SM-2 ease factor")
    sm2_minimum_ease: float = Field(default=1.3, description="SM-2 ease factor floor")
    fsrs_request_retention: float = Field(
        default=0.9,
        description="Target recall probability at the scheduled review",
    )
    fsrs_maximum_interval: int = Field(default=36500, description="FSRS interval cap (days)")
    fsrs_weights: list[float] = Field(
        default_factory=lambda: list(FSRS_V4_WEIGHTS),
        description="FSRS weight vector (17 values, FSRS v4 convention)",
    )

    # ========================================
    # Orchestrator Thresholds
    # ========================================
    mastery_threshold: float = Field(default=0.8, description="Mastered at or above")
    prerequisite_threshold: float = Field(
        default=0.5,
        description="Prerequisite topic mastery required to unlock",
    )
    learning_zone_low: float = Field(default=0.2, description="Lower edge of the learning zone")
    learning_zone_high: float = Field(default=0.8, description="Upper edge of the learning zone")
    weak_topic_threshold: float = Field(
        default=0.3,
        description="Mastery below which a topic is flagged for review",
    )
    scaffold_min_difficulty: float = Field(
        default=2.0,
        description="Author difficulty (1-10) at or below which wrong answers are not scaffolded",
    )
    scaffold_mastery_threshold: float = Field(
        default=0.4,
        description="Prior topic mastery below which a wrong answer triggers scaffolding",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    @field_validator("fsrs_weights")
    @classmethod
    def _check_weight_count(cls, value: list[float]) -> list[float]:
        if len(value) != len(FSRS_V4_WEIGHTS):
            raise ValueError(f"fsrs_weights needs {len(FSRS_V4_WEIGHTS)} values, got {len(value)}")
        return value

    @field_validator("fsrs_request_retention", "bkt_prior", "bkt_slip", "bkt_guess")
    @classmethod
    def _check_open_unit(cls, value: float) -> float:
        if not 0 < value < 1:
            raise ValueError(f"must be strictly between 0 and 1, got {value}")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
