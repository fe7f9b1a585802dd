"""Result objects returned by the batch, recovery and enhancement jobs."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional


@dataclass
class BatchResult:
    """Summary of one seeding run. Logged and returned, never persisted."""

    processed: int = 0
    succeeded: int = 0
    partial: int = 0
    failed: int = 0
    skipped: int = 0
    quality_scores: list[int] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    token_usage: int = 0
    stopped_early: bool = False

    @property
    def average_quality(self) -> int:
        if not self.quality_scores:
            return 0
        return round(sum(self.quality_scores) / len(self.quality_scores))

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["average_quality"] = self.average_quality
        return data


@dataclass(frozen=True)
class FailureAnalysis:
    """Classification of a failed backlog item's stored error."""

    error_type: str
    is_retryable: bool
    suggested_action: str
    estimated_recovery_minutes: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class RecoveryResult:
    recovered: int = 0
    failed_permanently: int = 0
    moved_to_dlq: int = 0
    retry_scheduled: int = 0
    dlq_cleaned: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class RequeueResult:
    requeued: int = 0
    requeued_ids: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class RecoveryStats:
    failed_items: int
    dlq_items: int
    recovery_rate: int
    common_failures: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class EnhancementResult:
    candidates: int = 0
    enhanced: int = 0
    unchanged: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
