"""Batch jobs for dictionary seeding."""

from .enhancement import EnhancementRunner
from .seed_processor import SeedProcessor

__all__ = ["EnhancementRunner", "SeedProcessor"]
