"""Recovery pass over failed backlog items and the dead-letter queue."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from ..config import RetryPolicy
from ..contracts import (
    BacklogItem,
    DeadLetterItem,
    FailureAnalysis,
    RecoveryResult,
    RecoveryStats,
    RequeueResult,
    utc_now,
)
from ..budget import BudgetLedger
from ..db import BacklogStore, DeadLetterStore
from ..errors import StoreError
from .classifier import API_ERROR, TOKEN_LIMIT, calculate_backoff_minutes, classify

logger = logging.getLogger(__name__)


class RecoveryService:
    """Re-arms retryable failures and demotes the rest to the dead-letter queue.

    Every decision is per item: a storage error on one item is recorded in
    the result and the pass moves on.
    """

    def __init__(
        self,
        backlog: BacklogStore,
        dead_letters: DeadLetterStore,
        ledger: BudgetLedger,
        policy: Optional[RetryPolicy] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.backlog = backlog
        self.dead_letters = dead_letters
        self.ledger = ledger
        self.policy = policy or RetryPolicy()
        self._clock = clock

    def classify(self, item: BacklogItem) -> FailureAnalysis:
        return classify(item, self.policy, self._clock())

    def recover_failed_items(self, limit: int = 50) -> RecoveryResult:
        result = RecoveryResult()
        now = self._clock()

        items = self.backlog.fetch_failed(limit, self.policy.min_cooldown_minutes, now)
        if not items:
            logger.info("No failed items to recover")
        else:
            logger.info(f"Processing {len(items)} failed items for recovery")

        for item in items:
            analysis = self.classify(item)
            try:
                if not analysis.is_retryable or item.attempts >= self.policy.max_attempts:
                    self._demote(item, analysis)
                    result.moved_to_dlq += 1
                    if not analysis.is_retryable:
                        result.failed_permanently += 1
                elif self._should_retry_now(item, analysis, now):
                    self.backlog.reset_for_retry(item.id)
                    result.recovered += 1
                    logger.info(f"Re-queued '{item.term}' for retry (attempt {item.attempts + 1})")
                else:
                    retry_after = self._retry_after(item, analysis, now)
                    self.backlog.set_retry_after(item.id, retry_after)
                    result.retry_scheduled += 1
                    logger.info(f"Scheduled '{item.term}' for retry after {retry_after.isoformat()}")
            except StoreError as e:
                logger.error(f"Recovery of '{item.term}' ({item.id}) failed: {e}")
                result.errors.append(f"{item.term}: {e}")

        try:
            result.dlq_cleaned = self.cleanup_dead_letters(now)
        except StoreError as e:
            logger.error(f"Dead-letter cleanup failed: {e}")
            result.errors.append(f"cleanup: {e}")

        logger.info(
            f"Recovery complete: {result.recovered} re-queued, {result.retry_scheduled} deferred, "
            f"{result.moved_to_dlq} moved to DLQ, {result.dlq_cleaned} expired"
        )
        return result

    def cleanup_dead_letters(self, now: Optional[datetime] = None) -> int:
        cutoff = (now or self._clock()) - timedelta(days=self.policy.dead_letter_retention_days)
        removed = self.dead_letters.delete_older_than(cutoff)
        if removed:
            logger.info(f"Removed {removed} dead-letter items older than {cutoff.date().isoformat()}")
        return removed

    def retry_from_dead_letter_queue(self, ids: Iterable[str]) -> RequeueResult:
        """Put dead-lettered items back in the backlog as fresh items."""
        result = RequeueResult()
        for dlq_id in ids:
            try:
                dead = self.dead_letters.get(dlq_id)
                if dead is None:
                    result.errors.append(f"DLQ item {dlq_id} not found")
                    continue
                fresh = BacklogItem.new(dead.term, dead.languages, dead.priority)
                self.backlog.insert(fresh)
                self._release_dead_letter(dlq_id, fresh)
            except StoreError as e:
                logger.error(f"Failed to requeue DLQ item {dlq_id}: {e}")
                result.errors.append(f"DLQ item {dlq_id}: {e}")
                continue
            result.requeued += 1
            result.requeued_ids.append(fresh.id)
            logger.info(f"Requeued '{dead.term}' from DLQ item {dlq_id} as {fresh.id}")
        return result

    def get_recovery_stats(self) -> RecoveryStats:
        failed = self.backlog.count_by_status().get("failed", 0)
        dlq_items = self.dead_letters.count()
        retried, recovered = self.backlog.retry_outcomes()
        return RecoveryStats(
            failed_items=failed,
            dlq_items=dlq_items,
            recovery_rate=round(recovered / retried * 100) if retried else 0,
            common_failures=self.dead_letters.failure_kind_counts(limit=5),
        )

    def _release_dead_letter(self, dlq_id: str, fresh: BacklogItem) -> None:
        """Delete the DLQ row behind ``fresh``, undoing the requeue if that fails.

        The DLQ row and its requeued backlog row never both survive, so the
        same id can be retried later without creating a second backlog item.
        """
        try:
            self.dead_letters.delete(dlq_id)
        except StoreError as e:
            try:
                self.backlog.delete(fresh.id)
            except StoreError as undo_error:
                raise StoreError(
                    f"DLQ item {dlq_id} could not be removed ({e}) and backlog item "
                    f"{fresh.id} was created; delete one of them before retrying ({undo_error})"
                ) from undo_error
            raise

    def _demote(self, item: BacklogItem, analysis: FailureAnalysis) -> None:
        # Insert before delete so the item is never missing from both tables
        self.dead_letters.insert(DeadLetterItem.from_backlog_item(item, analysis.to_dict()))
        self.backlog.delete(item.id)
        logger.warning(
            f"Moved '{item.term}' to dead-letter queue: {analysis.error_type} "
            f"after {item.attempts} attempts"
        )

    def _should_retry_now(self, item: BacklogItem, analysis: FailureAnalysis, now: datetime) -> bool:
        if analysis.error_type == TOKEN_LIMIT:
            return self.ledger.can_process_terms()

        if item.last_attempt_at is None:
            return True

        if analysis.error_type == API_ERROR:
            backoff = timedelta(minutes=calculate_backoff_minutes(item.attempts, self.policy))
            return now >= item.last_attempt_at + backoff

        return now - item.last_attempt_at >= timedelta(minutes=self.policy.min_cooldown_minutes)

    def _retry_after(self, item: BacklogItem, analysis: FailureAnalysis, now: datetime) -> datetime:
        minutes = analysis.estimated_recovery_minutes
        if minutes is None:
            minutes = calculate_backoff_minutes(item.attempts, self.policy)
        return now + timedelta(minutes=minutes)
