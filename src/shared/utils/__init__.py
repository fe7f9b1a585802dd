"""Shared utility functions."""

from .logging import setup_logging
from .env import load_env

__all__ = ["setup_logging", "load_env"]
