"""
Data contracts for the seeding backlog.

Rows of ``seed_queue``, ``dead_letter_queue``, ``manual_review_queue`` and
``token_usage`` as plain dataclasses with Supabase (de)serialisation.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional

from dateutil import parser as date_parser


class BacklogStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a Supabase timestamp, assuming UTC when no offset is given."""
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = date_parser.parse(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_languages(value: Any) -> list[str]:
    # Older rows store the language list as a JSON-encoded string
    if isinstance(value, str):
        value = json.loads(value) if value.strip() else []
    languages: list[str] = []
    for lang in value or []:
        if lang and lang not in languages:
            languages.append(str(lang))
    return languages


@dataclass
class BacklogItem:
    """A request to generate one term in one or more languages."""

    id: str
    term: str
    languages: list[str]
    priority: int = 0
    status: BacklogStatus = BacklogStatus.PENDING
    attempts: int = 0
    last_attempt_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    retry_after: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def new(cls, term: str, languages: list[str], priority: int) -> BacklogItem:
        return cls(
            id=str(uuid.uuid4()),
            term=term,
            languages=_parse_languages(languages),
            priority=priority,
            created_at=utc_now(),
        )

    @classmethod
    def from_dict(cls, data: dict) -> BacklogItem:
        return cls(
            id=str(data["id"]),
            term=data["term"],
            languages=_parse_languages(data.get("languages")),
            priority=int(data.get("priority") or 0),
            status=BacklogStatus(data.get("status") or BacklogStatus.PENDING.value),
            attempts=int(data.get("attempts") or 0),
            last_attempt_at=parse_timestamp(data.get("last_attempt_at")),
            completed_at=parse_timestamp(data.get("completed_at")),
            error_message=data.get("error_message"),
            retry_after=parse_timestamp(data.get("retry_after")),
            created_at=parse_timestamp(data.get("created_at")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "term": self.term,
            "languages": list(self.languages),
            "priority": self.priority,
            "status": self.status.value,
            "attempts": self.attempts,
            "last_attempt_at": _iso(self.last_attempt_at),
            "completed_at": _iso(self.completed_at),
            "error_message": self.error_message,
            "retry_after": _iso(self.retry_after),
            "created_at": _iso(self.created_at),
        }


@dataclass
class DeadLetterItem:
    """A backlog item demoted after exhausting retries or failing terminally."""

    id: str
    original_id: str
    term: str
    languages: list[str]
    priority: int
    failure_reason: str
    failure_analysis: dict[str, Any]
    attempts: int
    original_created_at: Optional[datetime]
    moved_to_dlq_at: datetime

    @classmethod
    def from_backlog_item(cls, item: BacklogItem, analysis: dict[str, Any]) -> DeadLetterItem:
        return cls(
            id=str(uuid.uuid4()),
            original_id=item.id,
            term=item.term,
            languages=list(item.languages),
            priority=item.priority,
            failure_reason=item.error_message or "Unknown error",
            failure_analysis=dict(analysis),
            attempts=item.attempts,
            original_created_at=item.created_at,
            moved_to_dlq_at=utc_now(),
        )

    @classmethod
    def from_dict(cls, data: dict) -> DeadLetterItem:
        analysis = data.get("failure_analysis") or {}
        if isinstance(analysis, str):
            analysis = json.loads(analysis)
        return cls(
            id=str(data["id"]),
            original_id=str(data.get("original_id") or ""),
            term=data["term"],
            languages=_parse_languages(data.get("languages")),
            priority=int(data.get("priority") or 0),
            failure_reason=data.get("failure_reason") or "Unknown error",
            failure_analysis=analysis,
            attempts=int(data.get("attempts") or 0),
            original_created_at=parse_timestamp(data.get("original_created_at")),
            moved_to_dlq_at=parse_timestamp(data.get("moved_to_dlq_at")) or utc_now(),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "original_id": self.original_id,
            "term": self.term,
            "languages": list(self.languages),
            "priority": self.priority,
            "failure_reason": self.failure_reason,
            "failure_analysis": dict(self.failure_analysis),
            "attempts": self.attempts,
            "original_created_at": _iso(self.original_created_at),
            "moved_to_dlq_at": _iso(self.moved_to_dlq_at),
        }


@dataclass
class ManualReviewItem:
    """A generated candidate that scored below the quality gate."""

    term: str
    language: str
    generated_content: str
    quality_score: int
    reason: str
    status: str = "pending"
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "term": self.term,
            "language": self.language,
            "generated_content": self.generated_content,
            "quality_score": self.quality_score,
            "reason": self.reason,
            "status": self.status,
            "created_at": _iso(self.created_at),
        }


@dataclass
class TokenUsageRecord:
    """One append-only row of the daily usage ledger."""

    date: date
    model: str
    tokens_used: int
    terms_processed: int
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "model": self.model,
            "tokens_used": self.tokens_used,
            "terms_processed": self.terms_processed,
            "created_at": _iso(self.created_at),
        }
