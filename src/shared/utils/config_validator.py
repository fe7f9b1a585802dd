"""
Configuration validation utilities.

Reads typed values from the environment and fails with a readable
``ConfigurationError`` instead of a bare ``ValueError`` deep inside a job.
"""

import os
from typing import Any, List, Optional


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def validate_int_env(name: str, default: Optional[int] = None, min_value: Optional[int] = None,
                     max_value: Optional[int] = None) -> int:
    """
    Validate an integer environment variable.

    Args:
        name: Environment variable name
        default: Default value if not set
        min_value: Minimum allowed value
        max_value: Maximum allowed value

    Returns:
        The validated integer value

    Raises:
        ConfigurationError: If the value is missing (and has no default) or out of range
    """
    value_str = os.getenv(name)

    if not value_str:
        if default is None:
            raise ConfigurationError(f"Missing required integer environment variable: {name}")
        return default

    try:
        value = int(value_str)
    except ValueError:
        raise ConfigurationError(
            f"Invalid integer value for {name}: '{value_str}'\n"
            f"Expected an integer value."
        )

    if min_value is not None and value < min_value:
        raise ConfigurationError(
            f"Value for {name} ({value}) is below minimum allowed value ({min_value})"
        )

    if max_value is not None and value > max_value:
        raise ConfigurationError(
            f"Value for {name} ({value}) exceeds maximum allowed value ({max_value})"
        )

    return value


def validate_bool_env(name: str, default: bool = False) -> bool:
    """
    Validate a boolean environment variable.

    Accepts: true, false, yes, no, 1, 0 (case-insensitive)

    Raises:
        ConfigurationError: If the value is not a recognised boolean
    """
    value_str = os.getenv(name)

    if not value_str:
        return default

    value_lower = value_str.strip().lower()

    if value_lower in ("true", "yes", "1"):
        return True
    elif value_lower in ("false", "no", "0"):
        return False
    else:
        raise ConfigurationError(
            f"Invalid boolean value for {name}: '{value_str}'\n"
            f"Expected one of: true, false, yes, no, 1, 0"
        )


def validate_choice_env(name: str, choices: List[str], default: Optional[str] = None,
                        case_sensitive: bool = False) -> str:
    """
    Validate an environment variable against a list of allowed choices.

    Returns:
        The validated value, lower-cased unless ``case_sensitive`` is set

    Raises:
        ConfigurationError: If the value is not in choices
    """
    value = os.getenv(name)

    if not value:
        if default is None:
            raise ConfigurationError(f"Missing required environment variable: {name}")
        return default

    compare_value = value if case_sensitive else value.strip().lower()
    compare_choices = choices if case_sensitive else [c.lower() for c in choices]

    if compare_value not in compare_choices:
        raise ConfigurationError(
            f"Invalid value for {name}: '{value}'\n"
            f"Allowed values: {', '.join(choices)}"
        )

    return compare_value


def check_config_override(override: Optional[Any], env_name: str,
                          required: bool = True) -> Optional[Any]:
    """
    Return the programmatic override if given, otherwise the environment value.

    Raises:
        ConfigurationError: If required and neither override nor env is set
    """
    if override is not None:
        return override

    value = os.getenv(env_name)

    if required and not value:
        raise ConfigurationError(
            f"Missing required configuration: {env_name}\n"
            f"Provide via environment variable or programmatic override."
        )

    return value
