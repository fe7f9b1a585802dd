"""Supabase stores used by the seeding job."""

from .backlog_store import BacklogStore
from .base import SupabaseStore, is_duplicate_error
from .cache import CacheInvalidator
from .dictionary_store import GENERATED_BY, DictionaryStore
from .queue_stores import DeadLetterStore, ManualReviewStore
from .usage_store import UsageStore

__all__ = [
    "BacklogStore",
    "CacheInvalidator",
    "DeadLetterStore",
    "DictionaryStore",
    "GENERATED_BY",
    "ManualReviewStore",
    "SupabaseStore",
    "UsageStore",
    "is_duplicate_error",
]
