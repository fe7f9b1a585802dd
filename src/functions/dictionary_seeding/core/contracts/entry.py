"""Dictionary entry contracts.

The final artifact written to ``dictionary_entries``. Serving paths outside
this module read the same rows, so the JSON shapes here are the public
format of an entry.
"""

from __future__ import annotations

import re
import unicodedata
import uuid
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator

SUPPORTED_LANGUAGES = ("en", "es", "fr", "de", "it", "ja", "zh-CN", "zh-TW")

TermType = Literal[
    "instrument",
    "genre",
    "technique",
    "composer",
    "theory",
    "tempo",
    "dynamics",
    "articulation",
    "form",
    "notation",
    "general",
]

ConfidenceLevel = Literal["low", "medium", "high"]

_WHITESPACE = re.compile(r"\s+")


def normalize_term(term: str) -> str:
    """Canonical lookup key for a term: NFKC, lower-case, single spaces."""
    folded = unicodedata.normalize("NFKC", term or "").strip().lower()
    return _WHITESPACE.sub(" ", folded)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Pronunciation(BaseModel):
    ipa: str
    syllables: list[str] = Field(default_factory=list)
    stress_pattern: Optional[str] = None
    audio_url: Optional[str] = None


class Definition(BaseModel):
    concise: str = Field(..., min_length=1)
    detailed: str = Field(..., min_length=1)
    etymology: Optional[str] = None
    pronunciation: Optional[Pronunciation] = None
    usage_example: Optional[str] = None

    @field_validator("pronunciation", mode="before")
    @classmethod
    def _coerce_pronunciation(cls, value: Any) -> Any:
        # Models sometimes answer with a bare IPA string
        if isinstance(value, str):
            return {"ipa": value} if value.strip() else None
        if isinstance(value, dict) and not value.get("ipa"):
            return None
        return value

    @field_validator("etymology", "usage_example", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class WikipediaReference(BaseModel):
    url: str
    extract: str = ""
    last_verified: datetime = Field(default_factory=_now)


class Book(BaseModel):
    title: str
    author: str = ""
    isbn: str
    publisher: Optional[str] = None
    year: Optional[int] = None
    url: Optional[str] = None
    relevance_score: float = Field(default=0.5, ge=0.0, le=1.0)


class ResearchPaper(BaseModel):
    title: str
    authors: list[str] = Field(default_factory=list)
    doi: str
    url: Optional[str] = None
    journal: Optional[str] = None
    relevance_score: float = Field(default=0.5, ge=0.0, le=1.0)


class EducationalResource(BaseModel):
    title: str
    url: str
    resource_type: str = "article"


class Video(BaseModel):
    title: str
    url: str
    channel: str = ""
    relevance_score: float = Field(default=0.5, ge=0.0, le=1.0)


class MediaReferences(BaseModel):
    youtube: list[Video] = Field(default_factory=list)


class References(BaseModel):
    wikipedia: Optional[WikipediaReference] = None
    books: list[Book] = Field(default_factory=list)
    research_papers: list[ResearchPaper] = Field(default_factory=list)
    media: Optional[MediaReferences] = None
    educational: list[EducationalResource] = Field(default_factory=list)

    def count(self) -> int:
        total = len(self.books) + len(self.research_papers) + len(self.educational)
        if self.wikipedia:
            total += 1
        if self.media:
            total += 1
        return total


class RelatedTerm(BaseModel):
    term: str
    relationship: str = "see_also"
    relevance: float = Field(default=0.5, ge=0.0, le=1.0)


class EntryMetadata(BaseModel):
    search_frequency: int = 0
    access_count: int = 0
    last_accessed: datetime = Field(default_factory=_now)
    related_terms: list[RelatedTerm] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    difficulty_level: Optional[str] = None
    instruments: list[str] = Field(default_factory=list)
    language: str = "en"
    generation_context: dict[str, Any] = Field(default_factory=dict)


class QualityScore(BaseModel):
    overall: int = Field(..., ge=0, le=100)
    definition_clarity: int = Field(default=0, ge=0, le=100)
    reference_completeness: int = Field(default=0, ge=0, le=100)
    accuracy_verification: int = Field(default=0, ge=0, le=100)
    last_ai_check: datetime = Field(default_factory=_now)
    human_verified: bool = False
    confidence_level: ConfidenceLevel = "low"


class DictionaryEntry(BaseModel):
    """A term definition in one language."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    term: str
    normalized_term: str
    type: TermType = "general"
    language: str = "en"
    definition: Definition
    references: References = Field(default_factory=References)
    metadata: EntryMetadata = Field(default_factory=EntryMetadata)
    quality_score: QualityScore
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)
    version: int = Field(default=1, ge=1)

    def to_record(self) -> dict[str, Any]:
        """Row for the ``dictionary_entries`` table."""
        data = self.model_dump(mode="json")
        data["overall_score"] = self.quality_score.overall
        return data

    @classmethod
    def from_record(cls, row: dict[str, Any]) -> DictionaryEntry:
        data = {key: value for key, value in row.items() if key != "overall_score"}
        return cls.model_validate(data)
