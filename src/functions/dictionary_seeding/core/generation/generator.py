"""Dictionary entry generation.

``generate`` runs up to three attempts of definition -> references -> score,
asking the quality validator for a second opinion when the heuristic score
misses the threshold. ``enhance`` regenerates parts of an existing entry and
keeps the result only when it is better.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping, Optional, get_args
from urllib.parse import quote, quote_plus

from ..contracts import (
    Definition,
    DictionaryEntry,
    EntryMetadata,
    MediaReferences,
    References,
    RelatedTerm,
    Video,
    WikipediaReference,
    normalize_term,
    utc_now,
)
from ..contracts.entry import TermType
from ..errors import BackendError, GenerationError
from ..llm import (
    EnhancedDefinition,
    EnhancedReferences,
    OpenAIBackend,
    ReferenceSuggestions,
    RelatedTermsPayload,
    decode,
)
from ..llm.prompts import (
    build_definition_prompt,
    build_enhancement_prompt,
    build_references_prompt,
    build_related_terms_prompt,
)
from .merge import is_improvement, merge_definitions, merge_references
from .quality import QualityValidator, calculate_quality_score, confidence_for

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
TERM_TYPES = get_args(TermType)
ENHANCEMENT_AREAS = ("definition", "references", "related_terms")
DEFAULT_FOCUS_AREAS = ("definition", "references")

_WIKIPEDIA_HOSTS = {"zh-CN": "zh", "zh-TW": "zh"}


def wikipedia_url(title: str, language: str) -> str:
    host = _WIKIPEDIA_HOSTS.get(language, language.split("-")[0] or "en")
    return f"https://{host}.wikipedia.org/wiki/{quote(title.strip().replace(' ', '_'))}"


def youtube_search_url(query: str) -> str:
    return f"https://www.youtube.com/results?search_query={quote_plus(query.strip())}"


class DictionaryGenerator:
    """Produces and improves :class:`DictionaryEntry` candidates."""

    def __init__(
        self,
        backend: OpenAIBackend,
        validator: Optional[QualityValidator] = None,
        quality_threshold: int = 70,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.backend = backend
        self.validator = validator
        self.quality_threshold = quality_threshold
        self._clock = clock

    def generate(
        self,
        term: str,
        language: str = "en",
        context: Optional[Mapping[str, Any]] = None,
        term_type: str = "general",
    ) -> DictionaryEntry:
        """Generate a candidate entry for ``term`` in ``language``.

        The returned entry met the engine threshold (possibly via the
        validator); callers apply their own stricter gate.

        Raises:
            BackendError: If every attempt failed at the backend
            GenerationError: If no attempt reached the quality threshold
        """
        context = dict(context or {})
        if term_type not in TERM_TYPES:
            term_type = "general"

        last_backend_error: Optional[BackendError] = None
        produced_candidate = False
        reasons: list[str] = []

        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                definition = self._generate_definition(term, term_type, language, context)
            except BackendError as e:
                last_backend_error = e
                reasons.append(str(e))
                logger.warning(f"Attempt {attempt}/{MAX_ATTEMPTS} for '{term}' ({language}) failed: {e}")
                continue

            if definition is None:
                reasons.append("definition response missing required fields")
                logger.warning(
                    f"Attempt {attempt}/{MAX_ATTEMPTS} for '{term}' ({language}) returned an invalid definition"
                )
                continue

            produced_candidate = True
            references = self._generate_references(term, term_type, language)
            entry = self._build_entry(term, term_type, language, definition, references, context, attempt)

            if entry.quality_score.overall >= self.quality_threshold:
                return entry

            if self.validator is not None:
                verdict = self.validator.validate(entry)
                if verdict.score >= self.quality_threshold:
                    entry.quality_score = entry.quality_score.model_copy(
                        update={
                            "overall": verdict.score,
                            "confidence_level": confidence_for(verdict.score),
                        }
                    )
                    logger.info(
                        f"Validator raised '{term}' ({language}) to {verdict.score} on attempt {attempt}"
                    )
                    return entry

            reasons.append(f"quality score {entry.quality_score.overall} below {self.quality_threshold}")
            logger.info(
                f"Quality score {entry.quality_score.overall} below threshold {self.quality_threshold} "
                f"for '{term}' ({language}), attempt {attempt}/{MAX_ATTEMPTS}"
            )

        if last_backend_error is not None and not produced_candidate:
            raise last_backend_error
        raise GenerationError(
            f"Failed to generate entry with acceptable quality for '{term}' ({language}): "
            + "; ".join(reasons)
        )

    def enhance(
        self,
        entry: DictionaryEntry,
        focus_areas: Optional[Iterable[str]] = None,
    ) -> Optional[DictionaryEntry]:
        """Regenerate parts of ``entry``; return the result only if it improved."""
        requested = list(focus_areas) if focus_areas is not None else list(DEFAULT_FOCUS_AREAS)
        focus = [area for area in ENHANCEMENT_AREAS if area in requested]
        if not focus:
            logger.warning(f"No supported focus areas in {requested}; nothing to enhance")
            return None

        enhanced = entry.model_copy(deep=True)

        if "definition" in focus:
            definition = self._enhance_part(entry, "definition", EnhancedDefinition)
            if definition is not None:
                enhanced.definition = merge_definitions(entry.definition, definition.definition)

        if "references" in focus:
            references = self._enhance_part(entry, "references", EnhancedReferences)
            if references is not None:
                enhanced.references = merge_references(entry.references, references.references)

        if "related_terms" in focus:
            related = self._related_terms(entry)
            if related:
                enhanced.metadata.related_terms = related

        now = self._clock()
        enhanced.quality_score = calculate_quality_score(enhanced.definition, enhanced.references, now)

        if not is_improvement(entry, enhanced):
            logger.info(
                f"Enhancement of '{entry.term}' ({entry.language}) did not improve it "
                f"({entry.quality_score.overall} -> {enhanced.quality_score.overall})"
            )
            return None

        enhanced.version = entry.version + 1
        enhanced.updated_at = now
        enhanced.metadata.last_accessed = now
        return enhanced

    def _generate_definition(
        self,
        term: str,
        term_type: str,
        language: str,
        context: Mapping[str, Any],
    ) -> Optional[Definition]:
        response = self.backend.complete_json(
            build_definition_prompt(term, term_type, language, context),
            max_output_tokens=500,
            temperature=0.3,
        )
        result = decode(response.text, Definition)
        if not result.ok:
            logger.debug(f"Definition for '{term}' rejected: {result.error}")
            return None
        return result.value

    def _generate_references(self, term: str, term_type: str, language: str) -> References:
        """Best effort: any failure yields an empty bundle."""
        try:
            response = self.backend.complete_json(
                build_references_prompt(term, term_type),
                max_output_tokens=300,
                temperature=0.1,
            )
        except BackendError as e:
            logger.warning(f"Reference lookup for '{term}' failed: {e}")
            return References()

        result = decode(response.text, ReferenceSuggestions)
        if not result.ok:
            logger.debug(f"Reference suggestions for '{term}' unusable: {result.error}")
            return References()

        suggestions = result.value
        references = References(
            books=suggestions.books,
            research_papers=suggestions.research_papers,
            educational=suggestions.educational,
        )
        if suggestions.wikipedia_search:
            references.wikipedia = WikipediaReference(
                url=wikipedia_url(suggestions.wikipedia_search, language),
                extract="",
                last_verified=self._clock(),
            )
        if suggestions.youtube_search:
            references.media = MediaReferences(
                youtube=[
                    Video(
                        title=f"Search results for {suggestions.youtube_search}",
                        url=youtube_search_url(suggestions.youtube_search),
                        channel="YouTube Search",
                        relevance_score=0.8,
                    )
                ]
            )
        return references

    def _build_entry(
        self,
        term: str,
        term_type: str,
        language: str,
        definition: Definition,
        references: References,
        context: Mapping[str, Any],
        attempt: int,
    ) -> DictionaryEntry:
        now = self._clock()
        metadata = EntryMetadata(
            last_accessed=now,
            difficulty_level=context.get("difficulty_level"),
            instruments=list(context.get("instruments") or []),
            language=language,
            generation_context={
                "requested_by": context.get("requested_by", "api"),
                "generation_reason": context.get("generation_reason"),
                "model": self.backend.model,
                "attempt": attempt,
            },
        )
        return DictionaryEntry(
            term=term,
            normalized_term=normalize_term(term),
            type=term_type,
            language=language,
            definition=definition,
            references=references,
            metadata=metadata,
            quality_score=calculate_quality_score(definition, references, now),
            created_at=now,
            updated_at=now,
        )

    def _enhance_part(self, entry: DictionaryEntry, area: str, model):
        prompt = build_enhancement_prompt(
            entry.model_dump(mode="json", include={"term", "type", "language", "definition", "references"}),
            [area],
            entry.language,
        )
        try:
            response = self.backend.complete_json(prompt, max_output_tokens=600, temperature=0.3)
        except BackendError as e:
            logger.warning(f"Enhancing {area} of '{entry.term}' failed: {e}")
            return None
        result = decode(response.text, model)
        if not result.ok:
            logger.warning(f"Enhanced {area} for '{entry.term}' unusable: {result.error}")
            return None
        return result.value

    def _related_terms(self, entry: DictionaryEntry) -> list[RelatedTerm]:
        try:
            response = self.backend.complete_json(
                build_related_terms_prompt(entry.term, entry.definition.concise),
                max_output_tokens=400,
                temperature=0.3,
            )
        except BackendError as e:
            logger.warning(f"Related terms for '{entry.term}' failed: {e}")
            return []
        result = decode(response.text, RelatedTermsPayload)
        if not result.ok:
            logger.warning(f"Related terms for '{entry.term}' unusable: {result.error}")
            return []
        return result.value.related_terms
