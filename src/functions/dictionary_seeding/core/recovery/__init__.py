"""Failure recovery and dead-letter handling."""

from .classifier import calculate_backoff_minutes, classify, error_kind, minutes_until_token_reset
from .service import RecoveryService

__all__ = [
    "RecoveryService",
    "calculate_backoff_minutes",
    "classify",
    "error_kind",
    "minutes_until_token_reset",
]
