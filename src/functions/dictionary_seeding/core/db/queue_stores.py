"""Dead-letter and manual-review tables."""

from __future__ import annotations

import json
import logging
from collections import Counter
from datetime import datetime
from typing import Optional

from ..contracts import DeadLetterItem, ManualReviewItem
from .base import SupabaseStore, filter_timestamp

logger = logging.getLogger(__name__)


class DeadLetterStore(SupabaseStore):
    """Terminal holding area for backlog items that will not be retried."""

    table_name = "dead_letter_queue"

    def insert(self, item: DeadLetterItem) -> None:
        self._write(lambda: self._table().insert(item.to_dict()), "insert dead letter")

    def get(self, item_id: str) -> Optional[DeadLetterItem]:
        response = self._read(
            lambda: self._table().select("*").eq("id", item_id).limit(1),
            "get dead letter",
        )
        rows = self._rows(response)
        return DeadLetterItem.from_dict(rows[0]) if rows else None

    def delete(self, item_id: str) -> bool:
        response = self._write(
            lambda: self._table().delete().eq("id", item_id),
            "delete dead letter",
        )
        return bool(self._rows(response))

    def delete_older_than(self, cutoff: datetime) -> int:
        response = self._write(
            lambda: self._table().delete().lt("moved_to_dlq_at", filter_timestamp(cutoff)),
            "purge dead letters",
        )
        return len(self._rows(response))

    def count(self) -> int:
        response = self._read(
            lambda: self._table().select("id", count="exact").limit(1),
            "count dead letters",
        )
        return self._count(response)

    def failure_kind_counts(self, limit: int = 5) -> list[dict]:
        """Most frequent failure kinds, as ``{"type", "count"}`` dicts."""
        response = self._read(
            lambda: self._table().select("failure_analysis"),
            "read failure analyses",
        )
        kinds: Counter[str] = Counter()
        for row in self._rows(response):
            analysis = row.get("failure_analysis") or {}
            if isinstance(analysis, str):
                analysis = json.loads(analysis)
            kinds[analysis.get("error_type") or "unknown"] += 1
        return [{"type": kind, "count": count} for kind, count in kinds.most_common(limit)]


class ManualReviewStore(SupabaseStore):
    """Candidates that generated but scored under the quality gate."""

    table_name = "manual_review_queue"

    def insert(self, item: ManualReviewItem) -> None:
        self._write(lambda: self._table().insert(item.to_dict()), "insert review item")

    def count_since(self, since: datetime) -> int:
        response = self._read(
            lambda: self._table()
            .select("id", count="exact")
            .gte("created_at", filter_timestamp(since))
            .limit(1),
            "count review items",
        )
        return self._count(response)
