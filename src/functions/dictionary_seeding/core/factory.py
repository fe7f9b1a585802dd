"""Wires stores, backend and jobs together from a :class:`SeedingConfig`."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .budget import BudgetLedger
from .config import SeedingConfig
from .db import (
    BacklogStore,
    CacheInvalidator,
    DeadLetterStore,
    DictionaryStore,
    ManualReviewStore,
    UsageStore,
)
from .generation import DictionaryGenerator, QualityValidator
from .llm import OpenAIBackend
from .pipelines import EnhancementRunner, SeedProcessor
from .recovery import RecoveryService

logger = logging.getLogger(__name__)


@dataclass
class SeedingComponents:
    config: SeedingConfig
    backend: OpenAIBackend
    generator: DictionaryGenerator
    ledger: BudgetLedger
    backlog: BacklogStore
    dead_letters: DeadLetterStore
    reviews: ManualReviewStore
    dictionary: DictionaryStore
    cache: CacheInvalidator

    def seed_processor(self) -> SeedProcessor:
        return SeedProcessor(
            config=self.config,
            generator=self.generator,
            ledger=self.ledger,
            backlog=self.backlog,
            dictionary=self.dictionary,
            reviews=self.reviews,
            cache=self.cache,
        )

    def recovery_service(self) -> RecoveryService:
        return RecoveryService(
            backlog=self.backlog,
            dead_letters=self.dead_letters,
            ledger=self.ledger,
            policy=self.config.retry,
        )

    def enhancement_runner(self) -> EnhancementRunner:
        return EnhancementRunner(
            generator=self.generator,
            dictionary=self.dictionary,
            ledger=self.ledger,
            usage_model_tag=self.config.usage_model_tag,
            cache=self.cache,
            max_score=self.config.min_quality_score,
        )


def build_components(
    config: Optional[SeedingConfig] = None,
    supabase_client: Optional[Any] = None,
    openai_client: Optional[Any] = None,
) -> SeedingComponents:
    """Build every seeding component from one configuration.

    Args:
        config: Resolved configuration; read from the environment when omitted
        supabase_client: Shared Supabase client; created from the environment
            when omitted
        openai_client: Pre-built OpenAI client, mainly for tests
    """
    config = config or SeedingConfig.from_env()

    backend = OpenAIBackend(config.llm, client=openai_client)
    validator = QualityValidator(backend, model=config.llm.quality_model)
    generator = DictionaryGenerator(
        backend,
        validator=validator,
        quality_threshold=config.generation_quality_threshold,
    )

    backlog = BacklogStore(client=supabase_client)
    # One client for every table
    client = backlog.client
    usage = UsageStore(client=client)

    logger.info(
        f"Seeding components ready (environment={config.environment}, model={config.llm.model}, "
        f"daily_limit={config.budget.daily_limit}, batch_size={config.batch_size})"
    )

    return SeedingComponents(
        config=config,
        backend=backend,
        generator=generator,
        ledger=BudgetLedger(config.budget, usage),
        backlog=backlog,
        dead_letters=DeadLetterStore(client=client),
        reviews=ManualReviewStore(client=client),
        dictionary=DictionaryStore(client=client),
        cache=CacheInvalidator(config.cache_purge_url, config.cache_purge_token),
    )
