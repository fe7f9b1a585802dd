"""Quality scoring for generated entries.

``calculate_quality_score`` is deterministic and offline. ``QualityValidator``
asks the backend for a second opinion and is only consulted when the
heuristic score falls short.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Optional

from ..contracts import Definition, DictionaryEntry, QualityScore, References, utc_now
from ..errors import BackendError
from ..llm import OpenAIBackend, QualityVerdict, decode
from ..llm.prompts import build_definition_review_prompt, build_quality_prompt

logger = logging.getLogger(__name__)

# Completeness weights per definition field; they sum to 100
FIELD_WEIGHTS = {
    "concise": 30,
    "detailed": 40,
    "etymology": 10,
    "pronunciation": 10,
    "usage_example": 10,
}
BASELINE_CLARITY = 70
BASELINE_ACCURACY = 70
POINTS_PER_REFERENCE = 20

DEFAULT_DEFINITION_SCORE = 50


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def confidence_for(overall: int) -> str:
    if overall >= 80:
        return "high"
    if overall >= 60:
        return "medium"
    return "low"


def completeness_score(definition: Definition) -> int:
    return sum(weight for name, weight in FIELD_WEIGHTS.items() if getattr(definition, name))


def calculate_quality_score(
    definition: Definition,
    references: References,
    now: Optional[datetime] = None,
) -> QualityScore:
    """Score an entry from field presence and reference count.

    overall = mean(baseline accuracy, completeness, baseline clarity,
    reference score), where each reference is worth 20 points up to 100.
    """
    completeness = completeness_score(definition)
    reference_score = min(100, references.count() * POINTS_PER_REFERENCE)
    overall = _round_half_up(
        (BASELINE_ACCURACY + completeness + BASELINE_CLARITY + reference_score) / 4
    )
    return QualityScore(
        overall=overall,
        definition_clarity=BASELINE_CLARITY,
        reference_completeness=reference_score,
        accuracy_verification=BASELINE_ACCURACY,
        last_ai_check=now or utc_now(),
        human_verified=False,
        confidence_level=confidence_for(overall),
    )


class QualityValidator:
    """Backend-driven review of whole entries or bare definitions."""

    def __init__(self, backend: OpenAIBackend, model: Optional[str] = None):
        self.backend = backend
        self.model = model

    def validate(self, entry: DictionaryEntry) -> QualityVerdict:
        """Score a full entry. Any failure yields a score of 0."""
        payload = entry.model_dump(
            mode="json",
            include={"term", "type", "language", "definition", "references"},
        )
        return self._review(
            build_quality_prompt(payload),
            fallback_score=0,
            label=f"entry '{entry.term}' ({entry.language})",
        )

    def validate_definition(
        self,
        definition: Definition,
        term: str,
        term_type: str = "general",
    ) -> QualityVerdict:
        """Score a definition on its own. Failures fall back to a neutral 50."""
        return self._review(
            build_definition_review_prompt(definition.model_dump(mode="json"), term, term_type),
            fallback_score=DEFAULT_DEFINITION_SCORE,
            label=f"definition of '{term}'",
        )

    def _review(self, prompt: str, *, fallback_score: int, label: str) -> QualityVerdict:
        try:
            response = self.backend.complete_json(
                prompt,
                max_output_tokens=300,
                temperature=0.1,
                model=self.model,
            )
        except BackendError as e:
            logger.warning(f"Quality review of {label} failed: {e}")
            return QualityVerdict(score=fallback_score, issues=[f"Validation failed: {e}"])

        result = decode(response.text, QualityVerdict)
        if not result.ok:
            logger.warning(f"Quality review of {label} returned an unusable verdict: {result.error}")
            return QualityVerdict(score=fallback_score, issues=[f"Validation failed: {result.error}"])

        logger.debug(f"Quality review of {label}: {result.value.score}")
        return result.value
