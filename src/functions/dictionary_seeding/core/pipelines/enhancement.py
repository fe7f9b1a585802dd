"""Periodic enhancement of low-scoring dictionary entries."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from ..budget import BudgetLedger
from ..contracts import EnhancementResult
from ..db import CacheInvalidator, DictionaryStore
from ..errors import SeedingError
from ..generation import DEFAULT_FOCUS_AREAS, DictionaryGenerator

logger = logging.getLogger(__name__)


class EnhancementRunner:
    """Regenerates weak parts of stale, low-scoring entries.

    Only entries the generator reports as improved are written back.
    """

    def __init__(
        self,
        generator: DictionaryGenerator,
        dictionary: DictionaryStore,
        ledger: BudgetLedger,
        usage_model_tag: str,
        cache: Optional[CacheInvalidator] = None,
        max_score: int = 85,
        min_age_days: int = 7,
        focus_areas: Iterable[str] = DEFAULT_FOCUS_AREAS,
        token_meter: Optional[Callable[[], int]] = None,
    ):
        self.generator = generator
        self.dictionary = dictionary
        self.ledger = ledger
        self.usage_model_tag = usage_model_tag
        self.cache = cache
        self.max_score = max_score
        self.min_age_days = min_age_days
        self.focus_areas = tuple(focus_areas)
        self._token_meter = token_meter or (lambda: generator.backend.tokens_used)

    def run(self, limit: int = 10) -> EnhancementResult:
        result = EnhancementResult()

        if not self.ledger.can_process_terms():
            logger.warning("Daily token budget exhausted; skipping enhancement")
            result.errors.append("Daily token budget exhausted")
            return result

        try:
            candidates = self.dictionary.enhancement_candidates(
                self.max_score, self.min_age_days, limit
            )
        except SeedingError as e:
            logger.error(f"Failed to fetch enhancement candidates: {e}", exc_info=True)
            result.errors.append(f"Fatal: {e}")
            return result

        result.candidates = len(candidates)
        logger.info(f"Enhancing {len(candidates)} entries scoring below {self.max_score}")

        start_tokens = self._token_meter()
        try:
            for entry in candidates:
                try:
                    enhanced = self.generator.enhance(entry, self.focus_areas)
                    if enhanced is None:
                        result.unchanged += 1
                        continue
                    self.dictionary.update(enhanced)
                    if self.cache is not None:
                        self.cache.invalidate_term(enhanced.normalized_term)
                    result.enhanced += 1
                    logger.info(
                        f"Enhanced '{entry.term}' ({entry.language}): "
                        f"{entry.quality_score.overall} -> {enhanced.quality_score.overall}"
                    )
                except Exception as e:
                    logger.error(
                        f"Enhancement of '{entry.term}' ({entry.language}) failed: {e}",
                        exc_info=not isinstance(e, SeedingError),
                    )
                    result.errors.append(f"{entry.term} ({entry.language}): {e}")
        finally:
            tokens_used = self._token_meter() - start_tokens
            if tokens_used > 0:
                self.ledger.record_usage(self.usage_model_tag, tokens_used, result.enhanced)

        logger.info(
            f"Enhancement complete: {result.enhanced} enhanced, {result.unchanged} unchanged, "
            f"{len(result.errors)} errors"
        )
        return result
