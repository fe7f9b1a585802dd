"""Supabase access for the ``seed_queue`` backlog table."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from ..contracts import BacklogItem, BacklogStatus, utc_now
from .base import SupabaseStore, filter_timestamp

logger = logging.getLogger(__name__)


class BacklogStore(SupabaseStore):
    """Reads and state transitions for backlog items.

    Every transition out of ``pending`` goes through :meth:`claim`, a
    conditional update that only succeeds for the caller that still sees the
    row as pending.
    """

    table_name = "seed_queue"

    def fetch_pending(
        self,
        limit: int,
        priority_threshold: int,
        now: Optional[datetime] = None,
    ) -> list[BacklogItem]:
        """Pending items eligible now, highest priority first, then oldest."""
        if limit <= 0:
            return []
        cutoff = filter_timestamp(now or utc_now())
        response = self._read(
            lambda: self._table()
            .select("*")
            .eq("status", BacklogStatus.PENDING.value)
            .gte("priority", priority_threshold)
            .or_(f"retry_after.is.null,retry_after.lte.{cutoff}")
            .order("priority", desc=True)
            .order("created_at")
            .limit(limit),
            "fetch pending items",
        )
        return [BacklogItem.from_dict(row) for row in self._rows(response)]

    def claim(self, item_id: str, now: Optional[datetime] = None) -> Optional[BacklogItem]:
        """Move a pending item to processing.

        Returns the claimed row, or None when another run got there first.
        """
        timestamp = (now or utc_now()).isoformat()
        response = self._write(
            lambda: self._table()
            .update({"status": BacklogStatus.PROCESSING.value, "last_attempt_at": timestamp})
            .eq("id", item_id)
            .eq("status", BacklogStatus.PENDING.value),
            "claim item",
        )
        rows = self._rows(response)
        return BacklogItem.from_dict(rows[0]) if rows else None

    def mark_completed(self, item_id: str, now: Optional[datetime] = None) -> None:
        timestamp = (now or utc_now()).isoformat()
        self._write(
            lambda: self._table()
            .update({
                "status": BacklogStatus.COMPLETED.value,
                "completed_at": timestamp,
                "error_message": None,
            })
            .eq("id", item_id),
            "complete item",
        )

    def mark_partial(
        self,
        item_id: str,
        remaining_languages: list[str],
        message: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> None:
        """Shrink the item to its unprocessed languages and put it back in line."""
        timestamp = (now or utc_now()).isoformat()
        self._write(
            lambda: self._table()
            .update({
                "languages": list(remaining_languages),
                "status": BacklogStatus.PENDING.value,
                "last_attempt_at": timestamp,
                "error_message": message,
            })
            .eq("id", item_id),
            "requeue partial item",
        )

    def mark_failed(
        self,
        item: BacklogItem,
        message: str,
        now: Optional[datetime] = None,
    ) -> None:
        timestamp = (now or utc_now()).isoformat()
        self._write(
            lambda: self._table()
            .update({
                "status": BacklogStatus.FAILED.value,
                "error_message": message,
                "attempts": item.attempts + 1,
                "last_attempt_at": timestamp,
            })
            .eq("id", item.id),
            "fail item",
        )

    def reset_for_retry(self, item_id: str) -> None:
        self._write(
            lambda: self._table()
            .update({
                "status": BacklogStatus.PENDING.value,
                "error_message": None,
                "retry_after": None,
            })
            .eq("id", item_id),
            "reset item",
        )

    def set_retry_after(self, item_id: str, retry_after: datetime) -> None:
        self._write(
            lambda: self._table()
            .update({"retry_after": retry_after.isoformat()})
            .eq("id", item_id),
            "schedule retry",
        )

    def fetch_failed(
        self,
        limit: int,
        cooldown_minutes: int,
        now: Optional[datetime] = None,
    ) -> list[BacklogItem]:
        """Failed items whose last attempt is older than the cooldown."""
        cutoff = filter_timestamp((now or utc_now()) - timedelta(minutes=cooldown_minutes))
        response = self._read(
            lambda: self._table()
            .select("*")
            .eq("status", BacklogStatus.FAILED.value)
            .or_(f"last_attempt_at.is.null,last_attempt_at.lte.{cutoff}")
            .order("priority", desc=True)
            .order("created_at")
            .limit(limit),
            "fetch failed items",
        )
        return [BacklogItem.from_dict(row) for row in self._rows(response)]

    def insert(self, item: BacklogItem) -> BacklogItem:
        response = self._write(lambda: self._table().insert(item.to_dict()), "insert item")
        rows = self._rows(response)
        return BacklogItem.from_dict(rows[0]) if rows else item

    def delete(self, item_id: str) -> None:
        self._write(lambda: self._table().delete().eq("id", item_id), "delete item")

    def queued_terms(self, terms: Iterable[str]) -> set[str]:
        """Which of ``terms`` already have a backlog row, in any status."""
        wanted = list(dict.fromkeys(terms))
        if not wanted:
            return set()
        response = self._read(
            lambda: self._table().select("term").in_("term", wanted),
            "look up queued terms",
        )
        return {row["term"] for row in self._rows(response)}

    def count_by_status(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for status in BacklogStatus:
            response = self._read(
                lambda: self._table()
                .select("id", count="exact")
                .eq("status", status.value)
                .limit(1),
                f"count {status.value} items",
            )
            counts[status.value] = self._count(response)
        return counts

    def retry_outcomes(self) -> tuple[int, int]:
        """(items attempted more than once, how many of those completed)."""
        retried = self._read(
            lambda: self._table().select("id", count="exact").gt("attempts", 1).limit(1),
            "count retried items",
        )
        recovered = self._read(
            lambda: self._table()
            .select("id", count="exact")
            .gt("attempts", 1)
            .eq("status", BacklogStatus.COMPLETED.value)
            .limit(1),
            "count recovered items",
        )
        return self._count(retried), self._count(recovered)

    def attempt_outcomes_since(self, since: datetime) -> tuple[int, int]:
        """(items attempted since ``since``, how many of those completed)."""
        cutoff = filter_timestamp(since)
        total = self._read(
            lambda: self._table()
            .select("id", count="exact")
            .gte("last_attempt_at", cutoff)
            .limit(1),
            "count attempted items",
        )
        completed = self._read(
            lambda: self._table()
            .select("id", count="exact")
            .gte("last_attempt_at", cutoff)
            .eq("status", BacklogStatus.COMPLETED.value)
            .limit(1),
            "count completed items",
        )
        return self._count(total), self._count(completed)

    def clear(self, status: BacklogStatus = BacklogStatus.PENDING) -> int:
        response = self._write(
            lambda: self._table().delete().eq("status", status.value),
            f"clear {status.value} items",
        )
        removed = len(self._rows(response))
        logger.info(f"Cleared {removed} {status.value} items from {self.table_name}")
        return removed
