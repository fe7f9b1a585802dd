"""Shared batch processing infrastructure.

Usage:
    from src.shared.batch import retry_on_network_error
"""

from .retry import RETRYABLE_NETWORK_ERRORS, retry_on_network_error

__all__ = [
    "RETRYABLE_NETWORK_ERRORS",
    "retry_on_network_error",
]
