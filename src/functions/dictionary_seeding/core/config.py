"""Immutable configuration for the dictionary seeding job.

Everything is resolved once by :meth:`SeedingConfig.from_env` and handed to
each component at construction; nothing re-reads the environment while a
batch is running.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from src.shared.utils.config_validator import (
    ConfigurationError,
    validate_bool_env,
    validate_choice_env,
    validate_int_env,
)
from src.shared.utils.env import get_env

ENVIRONMENTS = ["production", "staging", "development"]

# Per-environment defaults: (min quality, batch size, priority threshold)
_ENVIRONMENT_DEFAULTS = {
    "production": (85, 5, 8),
    "development": (85, 5, 8),
    "staging": (90, 2, 10),
}

DEFAULT_MODEL = "gpt-4o-mini"
SEED_MODEL_SUFFIX = "-seed"


@dataclass(frozen=True)
class RetryPolicy:
    """Recovery timing rules for failed backlog items."""

    max_attempts: int = 3
    base_delay_seconds: int = 5
    max_delay_seconds: int = 300
    backoff_multiplier: float = 2.0
    min_cooldown_minutes: int = 5
    dead_letter_retention_days: int = 30


@dataclass(frozen=True)
class BudgetConfig:
    """Daily token budget for generation calls."""

    nominal_budget: int = 5000
    daily_limit: int = 4500
    tokens_per_term: int = 840
    high_water_percent: int = 90
    fail_open: bool = False

    def __post_init__(self) -> None:
        if self.nominal_budget <= 0:
            raise ConfigurationError("nominal_budget must be positive")
        if self.daily_limit <= 0 or self.daily_limit > self.nominal_budget:
            raise ConfigurationError("daily_limit must be between 1 and nominal_budget")
        if self.tokens_per_term <= 0:
            raise ConfigurationError("tokens_per_term must be positive")


@dataclass(frozen=True)
class LLMConfig:
    """Settings for the generative backend."""

    model: str = DEFAULT_MODEL
    validation_model: Optional[str] = None
    api_key: Optional[str] = None
    timeout_seconds: int = 60

    @property
    def quality_model(self) -> str:
        return self.validation_model or self.model


@dataclass(frozen=True)
class SeedingConfig:
    """Top-level configuration passed into every seeding component."""

    environment: str = "production"
    seed_enabled: bool = False
    min_quality_score: int = 85
    generation_quality_threshold: int = 70
    batch_size: int = 5
    priority_threshold: int = 8
    max_batch_seconds: int = 600
    budget: BudgetConfig = field(default_factory=BudgetConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    cache_purge_url: Optional[str] = None
    cache_purge_token: Optional[str] = None

    @property
    def usage_model_tag(self) -> str:
        """Model identifier recorded in the usage ledger for seeding runs."""
        return f"{self.llm.model}{SEED_MODEL_SUFFIX}"

    @classmethod
    def from_env(cls) -> "SeedingConfig":
        environment = validate_choice_env("ENVIRONMENT", ENVIRONMENTS, default="production")
        min_quality, batch_size, priority = _ENVIRONMENT_DEFAULTS[environment]

        return cls(
            environment=environment,
            seed_enabled=validate_bool_env("SEED_ENABLED", default=False),
            min_quality_score=validate_int_env(
                "QUALITY_MIN_THRESHOLD", default=min_quality, min_value=0, max_value=100
            ),
            generation_quality_threshold=validate_int_env(
                "QUALITY_THRESHOLD", default=70, min_value=0, max_value=100
            ),
            batch_size=validate_int_env("SEED_BATCH_SIZE", default=batch_size, min_value=1),
            priority_threshold=validate_int_env("SEED_PRIORITY_THRESHOLD", default=priority),
            max_batch_seconds=validate_int_env("SEED_MAX_BATCH_SECONDS", default=600, min_value=1),
            budget=_budget_from_env(environment),
            llm=LLMConfig(
                model=get_env("OPENAI_MODEL", DEFAULT_MODEL),
                validation_model=get_env("OPENAI_VALIDATION_MODEL"),
                api_key=get_env("OPENAI_API_KEY"),
                timeout_seconds=validate_int_env(
                    "OPENAI_TIMEOUT_SECONDS", default=60, min_value=5, max_value=600
                ),
            ),
            cache_purge_url=get_env("DICTIONARY_CACHE_PURGE_URL"),
            cache_purge_token=get_env("DICTIONARY_CACHE_PURGE_TOKEN"),
        )


def _budget_from_env(environment: str) -> BudgetConfig:
    tokens_per_term = validate_int_env("SEED_TOKENS_PER_TERM", default=840, min_value=1)
    high_water = validate_int_env(
        "SEED_USAGE_HIGH_WATER_PERCENT", default=90, min_value=1, max_value=100
    )
    fail_open = validate_bool_env("SEED_BUDGET_FAIL_OPEN", default=False)

    if environment == "staging":
        nominal = validate_int_env("STAGING_DAILY_TOKEN_BUDGET", default=1000, min_value=1)
        limit = validate_int_env("STAGING_DAILY_TOKEN_LIMIT", default=900, min_value=1)
    else:
        nominal = validate_int_env("SEED_DAILY_TOKEN_BUDGET", default=5000, min_value=1)
        margin = validate_int_env("SEED_BUDGET_SAFETY_MARGIN", default=10, min_value=0, max_value=50)
        limit = nominal * (100 - margin) // 100

    return BudgetConfig(
        nominal_budget=nominal,
        daily_limit=limit,
        tokens_per_term=tokens_per_term,
        high_water_percent=high_water,
        fail_open=fail_open,
    )
