"""Append-only ``token_usage`` ledger table."""

from __future__ import annotations

from datetime import date

from ..contracts import TokenUsageRecord
from .base import SupabaseStore


class UsageStore(SupabaseStore):
    table_name = "token_usage"

    def insert(self, record: TokenUsageRecord) -> None:
        self._write(lambda: self._table().insert(record.to_dict()), "record usage")

    def sum_tokens(self, day: date, model_suffix: str) -> int:
        """Total tokens recorded on ``day`` by models ending in ``model_suffix``."""
        response = self._read(
            lambda: self._table()
            .select("tokens_used")
            .eq("date", day.isoformat())
            .like("model", f"%{model_suffix}"),
            "sum usage",
        )
        return sum(int(row.get("tokens_used") or 0) for row in self._rows(response))

    def rows_since(self, day: date, model_suffix: str) -> list[dict]:
        response = self._read(
            lambda: self._table()
            .select("date,tokens_used,terms_processed")
            .gte("date", day.isoformat())
            .like("model", f"%{model_suffix}")
            .order("date", desc=True),
            "read usage history",
        )
        return self._rows(response)
