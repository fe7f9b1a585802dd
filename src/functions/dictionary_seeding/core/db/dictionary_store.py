"""Access to the shared ``dictionary_entries`` table."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from ..contracts import DictionaryEntry, utc_now
from .base import SupabaseStore, filter_timestamp

logger = logging.getLogger(__name__)

GENERATED_BY = "seed_processor"


class DictionaryStore(SupabaseStore):
    """Entries are unique per (normalized_term, language).

    ``create`` raises :class:`DuplicateEntryError` when that constraint fires;
    callers decide whether a concurrent insert counts as success.
    """

    table_name = "dictionary_entries"

    def find_by_term(self, normalized_term: str, language: str) -> Optional[DictionaryEntry]:
        response = self._read(
            lambda: self._table()
            .select("*")
            .eq("normalized_term", normalized_term)
            .eq("language", language)
            .limit(1),
            "look up entry",
        )
        rows = self._rows(response)
        return DictionaryEntry.from_record(rows[0]) if rows else None

    def create(self, entry: DictionaryEntry) -> DictionaryEntry:
        self._write(lambda: self._table().insert(entry.to_record()), "create entry")
        logger.info(f"Created entry '{entry.term}' ({entry.language}) v{entry.version}")
        return entry

    def update(self, entry: DictionaryEntry) -> DictionaryEntry:
        """Overwrite the row with ``entry.id``. The caller sets ``version``."""
        record = entry.to_record()
        record.pop("id", None)
        record.pop("created_at", None)
        self._write(lambda: self._table().update(record).eq("id", entry.id), "update entry")
        logger.info(f"Updated entry '{entry.term}' ({entry.language}) to v{entry.version}")
        return entry

    def enhancement_candidates(
        self,
        max_score: int,
        older_than_days: int,
        limit: int,
        now: Optional[datetime] = None,
    ) -> list[DictionaryEntry]:
        """Lowest-scoring entries not touched for ``older_than_days``."""
        cutoff = filter_timestamp((now or utc_now()) - timedelta(days=older_than_days))
        response = self._read(
            lambda: self._table()
            .select("*")
            .lt("overall_score", max_score)
            .lt("updated_at", cutoff)
            .order("overall_score")
            .limit(limit),
            "fetch enhancement candidates",
        )
        entries = []
        for row in self._rows(response):
            try:
                entries.append(DictionaryEntry.from_record(row))
            except ValueError as e:
                logger.warning(f"Skipping unreadable entry {row.get('id')}: {e}")
        return entries

    def average_quality_since(self, since: datetime) -> int:
        """Mean overall score of entries this pipeline wrote since ``since``."""
        response = self._read(
            lambda: self._table()
            .select("overall_score")
            .gte("created_at", filter_timestamp(since))
            .eq("metadata->generation_context->>requested_by", GENERATED_BY),
            "average quality",
        )
        scores = [int(row["overall_score"]) for row in self._rows(response) if row.get("overall_score") is not None]
        if not scores:
            return 0
        return round(sum(scores) / len(scores))
