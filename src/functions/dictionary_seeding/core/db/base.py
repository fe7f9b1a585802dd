"""Common plumbing for the Supabase-backed stores."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from postgrest.exceptions import APIError

from src.shared.batch.retry import RETRYABLE_NETWORK_ERRORS, retry_on_network_error
from src.shared.db.connection import get_supabase_client

from ..errors import DuplicateEntryError, StoreError

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


def is_duplicate_error(exc: BaseException) -> bool:
    """True when ``exc`` is a unique-constraint violation from PostgREST."""
    if getattr(exc, "code", None) == UNIQUE_VIOLATION:
        return True
    text = str(exc).lower()
    return "duplicate key" in text or UNIQUE_VIOLATION in text


def filter_timestamp(value: datetime) -> str:
    """Render a timestamp for use inside PostgREST filter strings."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class SupabaseStore:
    """Base class holding the client and table for one store.

    Reads are retried on transport errors; writes are not, since PostgREST
    offers no idempotency key for them.
    """

    table_name: str = ""

    def __init__(self, client: Optional[Any] = None, table_name: Optional[str] = None):
        self.client = client if client is not None else get_supabase_client()
        if table_name:
            self.table_name = table_name

    def _table(self):
        return self.client.table(self.table_name)

    def _read(self, build: Callable[[], Any], action: str):
        try:
            return retry_on_network_error(lambda: build().execute())
        except (APIError, *RETRYABLE_NETWORK_ERRORS) as e:
            logger.error(f"Failed to {action} from {self.table_name}: {e}")
            raise StoreError(f"{action} on {self.table_name} failed: {e}") from e

    def _write(self, build: Callable[[], Any], action: str):
        try:
            return build().execute()
        except APIError as e:
            if is_duplicate_error(e):
                raise DuplicateEntryError(f"{action} on {self.table_name}: duplicate key") from e
            logger.error(f"Failed to {action} on {self.table_name}: {e}")
            raise StoreError(f"{action} on {self.table_name} failed: {e}") from e
        except RETRYABLE_NETWORK_ERRORS as e:
            logger.error(f"Network error during {action} on {self.table_name}: {e}")
            raise StoreError(f"{action} on {self.table_name} failed: {e}") from e

    @staticmethod
    def _rows(response) -> list[dict]:
        return list(getattr(response, "data", None) or [])

    @staticmethod
    def _count(response) -> int:
        count = getattr(response, "count", None)
        if count is None:
            return len(getattr(response, "data", None) or [])
        return int(count)
