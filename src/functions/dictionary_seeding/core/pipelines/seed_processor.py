"""
Seed batch pipeline.

Turns the highest-priority pending backlog items into quality-gated
dictionary entries under the daily token budget:
budget check -> fetch -> claim -> generate per language -> gate -> persist.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from ..budget import BudgetLedger
from ..config import SeedingConfig
from ..contracts import (
    BacklogItem,
    BacklogStatus,
    BatchResult,
    DictionaryEntry,
    ManualReviewItem,
    normalize_term,
    utc_now,
)
from ..data import SEED_TERMS, SeedTerm, term_type_for
from ..db import (
    GENERATED_BY,
    BacklogStore,
    CacheInvalidator,
    DictionaryStore,
    ManualReviewStore,
)
from ..errors import DuplicateEntryError, SeedingError
from ..generation import DictionaryGenerator

logger = logging.getLogger(__name__)

SEED_CONTEXT = {"requested_by": GENERATED_BY, "generation_reason": "auto_seed"}


class SeedProcessor:
    """
    Runs one seeding batch per invocation.

    Items are handled one at a time and, within an item, one language at a
    time. A failure in one language or item is recorded on the backlog row
    and in the result; only failures of the budget check or the initial fetch
    end the run early.
    """

    def __init__(
        self,
        config: SeedingConfig,
        generator: DictionaryGenerator,
        ledger: BudgetLedger,
        backlog: BacklogStore,
        dictionary: DictionaryStore,
        reviews: ManualReviewStore,
        cache: Optional[CacheInvalidator] = None,
        token_meter: Optional[Callable[[], int]] = None,
        clock: Callable[[], datetime] = utc_now,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            config: Resolved seeding configuration
            generator: Entry generator
            ledger: Daily budget ledger
            backlog: ``seed_queue`` store
            dictionary: ``dictionary_entries`` store
            reviews: ``manual_review_queue`` store
            cache: Optional downstream cache invalidator
            token_meter: Returns the backend's cumulative token count;
                defaults to ``generator.backend.tokens_used``
            clock: Wall clock (UTC)
            monotonic: Monotonic clock for the batch duration budget
        """
        self.config = config
        self.generator = generator
        self.ledger = ledger
        self.backlog = backlog
        self.dictionary = dictionary
        self.reviews = reviews
        self.cache = cache
        self._token_meter = token_meter or (lambda: generator.backend.tokens_used)
        self._clock = clock
        self._monotonic = monotonic

    def run_batch(self) -> BatchResult:
        result = BatchResult()

        if not self.config.seed_enabled:
            logger.info("Seed processing is disabled")
            return result

        started = self._monotonic()
        try:
            if not self.ledger.can_process_terms():
                logger.warning("Daily token budget exhausted")
                result.errors.append("Daily token budget exhausted")
                return result

            batch_size = self.ledger.safe_batch_size(self.config.batch_size)
            if batch_size == 0:
                logger.warning("Insufficient budget for processing")
                result.errors.append("Insufficient budget")
                return result

            candidates = self.backlog.fetch_pending(
                batch_size, self.config.priority_threshold, self._clock()
            )
            if not candidates:
                logger.info("No pending high-priority terms in queue")
                return result

            logger.info(
                f"Processing {len(candidates)} terms with priority >= {self.config.priority_threshold}"
            )

            for index, candidate in enumerate(candidates):
                elapsed = self._monotonic() - started
                if elapsed >= self.config.max_batch_seconds:
                    logger.warning(
                        f"Batch time budget of {self.config.max_batch_seconds}s used up after "
                        f"{index} items; stopping"
                    )
                    result.stopped_early = True
                    break

                self._run_item(candidate, result)

                if index < len(candidates) - 1:
                    usage = self.ledger.usage_percentage()
                    if usage >= self.config.budget.high_water_percent:
                        logger.warning(f"Token usage at {usage}%, stopping processing")
                        result.stopped_early = True
                        break
        except Exception as e:
            logger.error(f"Fatal error in seed processing: {e}", exc_info=True)
            result.errors.append(f"Fatal: {e}")

        self._log_summary(result)
        return result

    def initialize_backlog(
        self,
        terms: Optional[Iterable[SeedTerm]] = None,
        clear_pending: bool = False,
    ) -> dict:
        """
        Queue catalog terms that are not yet in the backlog.

        Args:
            terms: Terms to queue; defaults to the built-in catalog
            clear_pending: Delete existing pending rows first

        Returns:
            Dictionary with ``queued``, ``skipped``, ``cleared`` and ``total``
        """
        seeds: list[SeedTerm] = []
        seen: set[str] = set()
        for seed in (SEED_TERMS if terms is None else terms):
            key = normalize_term(seed.term)
            if key not in seen:
                seen.add(key)
                seeds.append(seed)

        cleared = self.backlog.clear(BacklogStatus.PENDING) if clear_pending else 0
        already_queued = self.backlog.queued_terms(seed.term for seed in seeds)

        stats = {"queued": 0, "skipped": 0, "cleared": cleared, "total": len(seeds)}
        for seed in seeds:
            if seed.term in already_queued:
                stats["skipped"] += 1
                continue
            try:
                self.backlog.insert(BacklogItem.new(seed.term, list(seed.languages), seed.priority))
            except DuplicateEntryError:
                stats["skipped"] += 1
                continue
            stats["queued"] += 1

        logger.info(
            f"Backlog initialized: {stats['queued']} queued, {stats['skipped']} already present"
        )
        return stats

    def get_queue_status(self) -> dict:
        counts = self.backlog.count_by_status()
        return {**counts, "total": sum(counts.values())}

    def get_processing_stats(self, days: int = 7) -> dict:
        since = self._clock() - timedelta(days=days)
        attempted, completed = self.backlog.attempt_outcomes_since(since)
        usage = self.ledger.get_usage_stats(days)
        return {
            "days": days,
            "terms_processed": completed,
            "average_quality": self.dictionary.average_quality_since(since),
            "success_rate": round(completed / attempted * 100) if attempted else 0,
            "manual_review_count": self.reviews.count_since(since),
            "token_efficiency": usage["average_efficiency"],
        }

    def _run_item(self, candidate: BacklogItem, result: BatchResult) -> None:
        try:
            item = self.backlog.claim(candidate.id, self._clock())
        except SeedingError as e:
            logger.error(f"Could not claim '{candidate.term}' ({candidate.id}): {e}")
            result.errors.append(f"{candidate.term}: {e}")
            return

        if item is None:
            logger.info(f"'{candidate.term}' was claimed by another run; skipping")
            result.skipped += 1
            return

        result.processed += 1
        try:
            self._process_item(item, result)
        except Exception as e:
            logger.error(f"Error processing queue item {item.id}: {e}", exc_info=True)
            result.failed += 1
            result.errors.append(f"{item.term}: {e}")
            try:
                self.backlog.mark_failed(item, str(e), self._clock())
            except SeedingError as mark_error:
                logger.error(f"Could not mark '{item.term}' as failed: {mark_error}")

    def _process_item(self, item: BacklogItem, result: BatchResult) -> None:
        processed: list[str] = []
        scores: list[int] = []
        diagnostics: list[str] = []
        term_type = term_type_for(item.term)
        normalized = normalize_term(item.term)

        start_tokens = self._token_meter()
        try:
            for language in item.languages:
                try:
                    existing = self.dictionary.find_by_term(normalized, language)
                    if existing and existing.quality_score.overall >= self.config.min_quality_score:
                        logger.info(f"'{item.term}' in {language} already exists with sufficient quality")
                        processed.append(language)
                        continue

                    logger.info(f"Generating '{item.term}' in {language}...")
                    entry = self.generator.generate(
                        item.term, language, context=SEED_CONTEXT, term_type=term_type
                    )

                    score = entry.quality_score.overall
                    scores.append(score)

                    if score < self.config.min_quality_score:
                        reason = f"Quality score {score} below threshold {self.config.min_quality_score}"
                        self.reviews.insert(
                            ManualReviewItem(
                                term=item.term,
                                language=language,
                                generated_content=entry.model_dump_json(),
                                quality_score=score,
                                reason=reason,
                            )
                        )
                        diagnostics.append(f"{language}: {reason}")
                        logger.info(f"'{item.term}' in {language} sent to manual review (score: {score})")
                        continue

                    if self._save(entry, existing):
                        logger.info(f"Generated '{item.term}' in {language} with quality score {score}")
                    else:
                        result.skipped += 1
                    processed.append(language)
                except Exception as e:
                    # A failure here only costs this language; the item carries on
                    logger.error(
                        f"Error processing '{item.term}' in {language}: {e}",
                        exc_info=not isinstance(e, SeedingError),
                    )
                    diagnostics.append(f"{language}: {e}")
                    result.errors.append(f"{item.term} ({language}): {e}")
        finally:
            result.quality_scores.extend(scores)
            tokens_used = self._token_meter() - start_tokens
            if tokens_used > 0:
                self.ledger.record_usage(self.config.usage_model_tag, tokens_used, len(processed))
                result.token_usage += tokens_used

        remaining = [language for language in item.languages if language not in processed]
        summary = "; ".join(diagnostics) or None
        now = self._clock()

        if not remaining:
            self.backlog.mark_completed(item.id, now)
            result.succeeded += 1
        elif processed:
            self.backlog.mark_partial(item.id, remaining, summary, now)
            result.partial += 1
            logger.info(f"'{item.term}' partially processed; remaining languages: {remaining}")
        else:
            message = "Failed to generate for any language"
            if summary:
                message = f"{message}: {summary}"
            self.backlog.mark_failed(item, message, now)
            result.failed += 1

    def _save(self, entry: DictionaryEntry, existing: Optional[DictionaryEntry]) -> bool:
        """Persist a passing entry. Returns False if a concurrent run already wrote it."""
        try:
            if existing:
                self.dictionary.update(
                    entry.model_copy(
                        update={
                            "id": existing.id,
                            "created_at": existing.created_at,
                            "version": existing.version + 1,
                        }
                    )
                )
            else:
                self.dictionary.create(entry)
        except DuplicateEntryError:
            logger.info(
                f"Entry for '{entry.term}' in {entry.language} already exists (created elsewhere), skipping"
            )
            return False

        if self.cache is not None:
            self.cache.invalidate_term(entry.normalized_term)
        return True

    def _log_summary(self, result: BatchResult) -> None:
        logger.info(
            f"Seed processing complete: processed={result.processed} succeeded={result.succeeded} "
            f"partial={result.partial} failed={result.failed} skipped={result.skipped} "
            f"average_quality={result.average_quality} tokens={result.token_usage}"
        )
        if result.errors:
            logger.info(f"{len(result.errors)} errors during batch")
