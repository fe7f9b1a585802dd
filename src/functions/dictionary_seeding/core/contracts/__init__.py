"""Data contracts for dictionary seeding."""

from .backlog import (
    BacklogItem,
    BacklogStatus,
    DeadLetterItem,
    ManualReviewItem,
    TokenUsageRecord,
    parse_timestamp,
    utc_now,
)
from .entry import (
    SUPPORTED_LANGUAGES,
    Book,
    Definition,
    DictionaryEntry,
    EducationalResource,
    EntryMetadata,
    MediaReferences,
    Pronunciation,
    QualityScore,
    References,
    RelatedTerm,
    ResearchPaper,
    Video,
    WikipediaReference,
    normalize_term,
)
from .results import (
    BatchResult,
    EnhancementResult,
    FailureAnalysis,
    RecoveryResult,
    RecoveryStats,
    RequeueResult,
)

__all__ = [
    "BacklogItem",
    "BacklogStatus",
    "DeadLetterItem",
    "ManualReviewItem",
    "TokenUsageRecord",
    "parse_timestamp",
    "utc_now",
    "SUPPORTED_LANGUAGES",
    "Book",
    "Definition",
    "DictionaryEntry",
    "EducationalResource",
    "EntryMetadata",
    "MediaReferences",
    "Pronunciation",
    "QualityScore",
    "References",
    "RelatedTerm",
    "ResearchPaper",
    "Video",
    "WikipediaReference",
    "normalize_term",
    "BatchResult",
    "EnhancementResult",
    "FailureAnalysis",
    "RecoveryResult",
    "RecoveryStats",
    "RequeueResult",
]
