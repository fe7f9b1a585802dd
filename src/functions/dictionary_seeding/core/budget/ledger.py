"""Daily token budget shared by every seeding invocation.

The ledger is cooperative: checking the remaining budget and recording usage
are separate round trips, so two overlapping runs can both pass the check.
The safety margin between the nominal budget and the enforced limit absorbs
that overshoot.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable

from ..config import SEED_MODEL_SUFFIX, BudgetConfig
from ..contracts import TokenUsageRecord, utc_now
from ..db import UsageStore
from ..errors import BudgetLedgerUnavailable, StoreError

logger = logging.getLogger(__name__)


class BudgetLedger:
    """Reads and appends ``token_usage`` rows for the seeding pathway."""

    def __init__(
        self,
        config: BudgetConfig,
        usage_store: UsageStore,
        model_suffix: str = SEED_MODEL_SUFFIX,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config
        self.usage_store = usage_store
        self.model_suffix = model_suffix
        self._clock = clock

    @property
    def daily_limit(self) -> int:
        return self.config.daily_limit

    def tokens_used_today(self) -> int:
        """Tokens recorded today (UTC) by this pipeline.

        When the usage store cannot be read the answer depends on
        ``fail_open``: zero (admit work) or the full nominal budget (block it).
        """
        try:
            return self._read_usage()
        except BudgetLedgerUnavailable as e:
            if self.config.fail_open:
                logger.warning(f"{e}; failing open and assuming no usage today")
                return 0
            logger.error(f"{e}; failing closed and treating the budget as spent")
            return self.config.nominal_budget

    def can_process_terms(self) -> bool:
        return self.tokens_used_today() < self.config.daily_limit

    def available_tokens(self) -> int:
        return max(0, self.config.daily_limit - self.tokens_used_today())

    def safe_batch_size(self, desired: int) -> int:
        """Largest batch up to ``desired`` whose estimated cost fits today."""
        affordable = self.available_tokens() // self.config.tokens_per_term
        size = max(0, min(desired, affordable))
        logger.debug(
            f"Safe batch size {size} (desired {desired}, affordable {affordable}, "
            f"{self.config.tokens_per_term} tokens/term)"
        )
        return size

    def usage_percentage(self) -> int:
        return round(self.tokens_used_today() / self.config.nominal_budget * 100)

    def record_usage(self, model: str, tokens_used: int, terms_processed: int) -> bool:
        """Append a usage row. A failed write is logged and reported as False."""
        record = TokenUsageRecord(
            date=self._clock().date(),
            model=model,
            tokens_used=max(0, int(tokens_used)),
            terms_processed=max(0, int(terms_processed)),
        )
        try:
            self.usage_store.insert(record)
        except StoreError as e:
            logger.warning(f"Failed to record usage of {record.tokens_used} tokens for {model}: {e}")
            return False
        return True

    def get_usage_stats(self, days: int = 7) -> dict[str, Any]:
        """Per-day totals for the last ``days`` days, newest first."""
        start = self._clock().date() - timedelta(days=max(0, days - 1))
        try:
            rows = self.usage_store.rows_since(start, self.model_suffix)
        except StoreError as e:
            logger.warning(f"Could not read usage history: {e}")
            rows = []

        daily: dict[str, dict[str, int]] = {}
        for row in rows:
            day = str(row.get("date"))
            bucket = daily.setdefault(day, {"tokens_used": 0, "terms_processed": 0})
            bucket["tokens_used"] += int(row.get("tokens_used") or 0)
            bucket["terms_processed"] += int(row.get("terms_processed") or 0)

        total_tokens = sum(bucket["tokens_used"] for bucket in daily.values())
        total_terms = sum(bucket["terms_processed"] for bucket in daily.values())

        return {
            "days": days,
            "daily": [
                {"date": day, **bucket} for day, bucket in sorted(daily.items(), reverse=True)
            ],
            "total_tokens": total_tokens,
            "total_terms": total_terms,
            "daily_limit": self.config.daily_limit,
            "nominal_budget": self.config.nominal_budget,
            # Terms generated per 1,000 tokens
            "average_efficiency": round(total_terms / total_tokens * 1000, 2) if total_tokens else 0.0,
        }

    def _read_usage(self) -> int:
        today = self._clock().date()
        try:
            return self.usage_store.sum_tokens(today, self.model_suffix)
        except StoreError as e:
            raise BudgetLedgerUnavailable(f"Usage ledger unreachable: {e}") from e
