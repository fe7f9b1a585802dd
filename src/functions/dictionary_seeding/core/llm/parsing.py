"""Strict decoding of backend responses.

Every response shape has a pydantic model; ``decode`` turns raw text into a
tagged :class:`DecodeResult` so callers branch on ``ok`` instead of probing
for fields.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Generic, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..contracts import (
    Book,
    Definition,
    EducationalResource,
    References,
    RelatedTerm,
    ResearchPaper,
)

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL | re.IGNORECASE)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ReferenceSuggestions(BaseModel):
    wikipedia_search: Optional[str] = None
    youtube_search: Optional[str] = None
    book_keywords: list[str] = Field(default_factory=list)
    academic_keywords: list[str] = Field(default_factory=list)
    books: list[Book] = Field(default_factory=list)
    research_papers: list[ResearchPaper] = Field(default_factory=list)
    educational: list[EducationalResource] = Field(default_factory=list)


class QualityVerdict(BaseModel):
    score: int = Field(default=0, ge=0, le=100)
    issues: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, value: Any) -> int:
        if value is None:
            return 0
        return max(0, min(100, round(float(value))))


class EnhancedDefinition(BaseModel):
    definition: Definition


class EnhancedReferences(BaseModel):
    references: References


class RelatedTermsPayload(BaseModel):
    related_terms: list[RelatedTerm] = Field(default_factory=list)


@dataclass(frozen=True)
class DecodeResult(Generic[ModelT]):
    ok: bool
    value: Optional[ModelT] = None
    error: Optional[str] = None


def extract_json(text: Optional[str]) -> dict[str, Any]:
    """Pull a JSON object out of a model response.

    Tolerates markdown fences and prose before or after the object.

    Raises:
        ValueError: If no JSON object can be parsed
    """
    if not text or not text.strip():
        raise ValueError("Empty response from generative backend")

    cleaned = text.strip()
    fenced = _FENCE_PATTERN.search(cleaned)
    if fenced:
        cleaned = fenced.group(1).strip()

    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end < start:
        raise ValueError("Response did not contain a JSON object")

    try:
        parsed = json.loads(cleaned[start:end + 1])
    except json.JSONDecodeError as exc:
        raise ValueError(f"Failed to parse response as JSON: {exc.msg}") from exc

    if not isinstance(parsed, dict):
        raise ValueError("Response JSON is not an object")
    return parsed


def decode(text: Optional[str], model: Type[ModelT]) -> DecodeResult[ModelT]:
    """Decode ``text`` into ``model`` without raising."""
    try:
        payload = extract_json(text)
    except ValueError as exc:
        return DecodeResult(ok=False, error=str(exc))

    try:
        return DecodeResult(ok=True, value=model.model_validate(payload))
    except ValidationError as exc:
        message = "; ".join(
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
            for error in exc.errors()
        )
        logger.debug("Response failed %s validation: %s", model.__name__, message)
        return DecodeResult(ok=False, error=f"Invalid {model.__name__}: {message}")
