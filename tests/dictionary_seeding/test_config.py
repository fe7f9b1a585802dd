import pytest

from src.functions.dictionary_seeding.core.config import BudgetConfig, SeedingConfig
from src.shared.utils.config_validator import ConfigurationError

_SEED_VARIABLES = (
    "ENVIRONMENT",
    "SEED_ENABLED",
    "QUALITY_MIN_THRESHOLD",
    "QUALITY_THRESHOLD",
    "SEED_BATCH_SIZE",
    "SEED_PRIORITY_THRESHOLD",
    "SEED_MAX_BATCH_SECONDS",
    "SEED_TOKENS_PER_TERM",
    "SEED_USAGE_HIGH_WATER_PERCENT",
    "SEED_BUDGET_FAIL_OPEN",
    "SEED_DAILY_TOKEN_BUDGET",
    "SEED_BUDGET_SAFETY_MARGIN",
    "STAGING_DAILY_TOKEN_BUDGET",
    "STAGING_DAILY_TOKEN_LIMIT",
    "OPENAI_MODEL",
    "OPENAI_VALIDATION_MODEL",
    "OPENAI_API_KEY",
    "OPENAI_TIMEOUT_SECONDS",
    "DICTIONARY_CACHE_PURGE_URL",
    "DICTIONARY_CACHE_PURGE_TOKEN",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _SEED_VARIABLES:
        monkeypatch.delenv(name, raising=False)


def test_production_defaults():
    config = SeedingConfig.from_env()

    assert config.environment == "production"
    assert config.seed_enabled is False
    assert config.min_quality_score == 85
    assert config.generation_quality_threshold == 70
    assert config.batch_size == 5
    assert config.priority_threshold == 8
    assert config.budget.nominal_budget == 5000
    assert config.budget.daily_limit == 4500
    assert config.budget.tokens_per_term == 840
    assert config.budget.fail_open is False
    assert config.usage_model_tag == "gpt-4o-mini-seed"
    assert config.llm.quality_model == "gpt-4o-mini"


def test_staging_is_stricter(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "Staging")

    config = SeedingConfig.from_env()

    assert config.environment == "staging"
    assert config.min_quality_score == 90
    assert config.batch_size == 2
    assert config.priority_threshold == 10
    assert config.budget.nominal_budget == 1000
    assert config.budget.daily_limit == 900


def test_overrides_are_read(monkeypatch):
    monkeypatch.setenv("SEED_ENABLED", "yes")
    monkeypatch.setenv("SEED_DAILY_TOKEN_BUDGET", "10000")
    monkeypatch.setenv("SEED_BUDGET_SAFETY_MARGIN", "20")
    monkeypatch.setenv("SEED_BUDGET_FAIL_OPEN", "true")
    monkeypatch.setenv("OPENAI_MODEL", "gpt-4o")
    monkeypatch.setenv("OPENAI_VALIDATION_MODEL", "gpt-4o-mini")

    config = SeedingConfig.from_env()

    assert config.seed_enabled is True
    assert config.budget.daily_limit == 8000
    assert config.budget.fail_open is True
    assert config.usage_model_tag == "gpt-4o-seed"
    assert config.llm.quality_model == "gpt-4o-mini"


@pytest.mark.parametrize(
    "name, value",
    [
        ("SEED_ENABLED", "maybe"),
        ("ENVIRONMENT", "qa"),
        ("SEED_BATCH_SIZE", "0"),
        ("QUALITY_MIN_THRESHOLD", "101"),
        ("SEED_DAILY_TOKEN_BUDGET", "lots"),
    ],
)
def test_invalid_values_raise(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError):
        SeedingConfig.from_env()


def test_staging_limit_cannot_exceed_budget(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "staging")
    monkeypatch.setenv("STAGING_DAILY_TOKEN_LIMIT", "2000")

    with pytest.raises(ConfigurationError, match="daily_limit"):
        SeedingConfig.from_env()


def test_budget_config_rejects_non_positive_values():
    with pytest.raises(ConfigurationError):
        BudgetConfig(tokens_per_term=0)
