"""Prompt templates for dictionary entry generation and review."""

from __future__ import annotations

import json
from textwrap import dedent
from typing import Any, Iterable, Mapping, Optional

LANGUAGE_LABELS = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "ja": "Japanese",
    "zh-CN": "Simplified Chinese",
    "zh-TW": "Traditional Chinese",
}

SYSTEM_PROMPT = (
    "You are a professional music dictionary editor with deep knowledge of music theory, "
    "instruments, performance practice and musical terminology. "
    "Respond with valid JSON only. No markdown, no additional text, just the JSON object."
)

_DEFINITION_TEMPLATE = dedent(
    """
    Create a dictionary entry for the music term: "{term}"
    Term type: {term_type}
    Write every field in {language_label}.
    {context_lines}
    Respond with this JSON object:
    {{
      "concise": "A clear, accurate 1-2 sentence definition for quick reference (max 200 characters)",
      "detailed": "A fuller explanation of meaning, usage and significance in music (3-5 sentences)",
      "etymology": "Origin and historical development of the word, if known and relevant",
      "pronunciation": {{
        "ipa": "International Phonetic Alphabet notation",
        "syllables": ["syl", "la", "bles"],
        "stress_pattern": "where the primary stress falls"
      }},
      "usage_example": "A practical sentence showing the term used in a musical context"
    }}

    Guidelines:
    - Be accurate and educational; suitable for students and teachers.
    - Use clear language and avoid jargon unless the term requires it.
    - Leave etymology empty rather than guessing.
    """
).strip()

_REFERENCES_TEMPLATE = dedent(
    """
    Suggest authoritative references for the music term "{term}" (type: {term_type}).
    Respond with this JSON object:
    {{
      "wikipedia_search": "best Wikipedia article title or search query",
      "youtube_search": "search query for educational videos",
      "book_keywords": ["keywords", "for", "book", "search"],
      "academic_keywords": ["keywords", "for", "research", "papers"],
      "books": [{{"title": "...", "author": "...", "isbn": "..."}}],
      "research_papers": [{{"title": "...", "authors": ["..."], "doi": "..."}}],
      "educational": [{{"title": "...", "url": "https://..."}}]
    }}
    Only list books, papers and resources you are certain exist; use empty lists otherwise.
    """
).strip()

_QUALITY_TEMPLATE = dedent(
    """
    You are a music education quality reviewer. Evaluate this dictionary entry.

    Entry:
    {entry_json}

    Consider definition accuracy and clarity, completeness, educational value for
    music students, and the quality of the references.

    Respond with this JSON object:
    {{
      "score": <integer 0-100>,
      "issues": ["significant problems"],
      "suggestions": ["specific improvements"]
    }}
    """
).strip()

_DEFINITION_REVIEW_TEMPLATE = dedent(
    """
    You are a music education quality reviewer. Evaluate the following definition
    for accuracy, clarity, completeness and educational value.

    Term: "{term}" (type: {term_type})
    Definition: {definition_json}

    Respond with this JSON object:
    {{
      "score": <integer 0-100>,
      "issues": ["problems or inaccuracies"],
      "suggestions": ["specific improvements"]
    }}
    """
).strip()

_ENHANCEMENT_TEMPLATE = dedent(
    """
    You are improving an existing music dictionary entry for learners.

    Current entry:
    {entry_json}

    Focus on improving: {focus}
    Keep every statement accurate. Write in {language_label}.
    {shape}
    """
).strip()

_ENHANCEMENT_SHAPES = {
    "definition": dedent(
        """
        Respond with {"definition": {"concise": "...", "detailed": "...", "etymology": "...",
        "pronunciation": {"ipa": "..."}, "usage_example": "..."}}
        """
    ).strip(),
    "references": dedent(
        """
        Respond with {"references": {"books": [{"title": "...", "author": "...", "isbn": "..."}],
        "research_papers": [{"title": "...", "authors": ["..."], "doi": "..."}],
        "educational": [{"title": "...", "url": "https://..."}]}}
        """
    ).strip(),
}

_RELATED_TERMS_TEMPLATE = dedent(
    """
    Given the music term "{term}" defined as: "{definition}"

    List 5-10 related musical terms a student should also know, each with its
    relationship: synonym, antonym, see_also, broader or narrower.

    Respond with this JSON object:
    {{
      "related_terms": [
        {{"term": "related term", "relationship": "see_also", "relevance": 0.8}}
      ]
    }}
    """
).strip()


def language_label(language: str) -> str:
    return LANGUAGE_LABELS.get(language, language)


def build_definition_prompt(
    term: str,
    term_type: str,
    language: str,
    context: Optional[Mapping[str, Any]] = None,
) -> str:
    context = context or {}
    lines = []
    instruments = context.get("instruments")
    if instruments:
        lines.append(f"Relevant instruments: {', '.join(instruments)}")
    if context.get("difficulty_level"):
        lines.append(f"Difficulty level: {context['difficulty_level']}")
    return _DEFINITION_TEMPLATE.format(
        term=term,
        term_type=term_type,
        language_label=language_label(language),
        context_lines="\n".join(lines),
    )


def build_references_prompt(term: str, term_type: str) -> str:
    return _REFERENCES_TEMPLATE.format(term=term, term_type=term_type)


def build_quality_prompt(entry_payload: Mapping[str, Any]) -> str:
    return _QUALITY_TEMPLATE.format(entry_json=_dump(entry_payload))


def build_definition_review_prompt(
    definition_payload: Mapping[str, Any], term: str, term_type: str
) -> str:
    return _DEFINITION_REVIEW_TEMPLATE.format(
        term=term,
        term_type=term_type,
        definition_json=_dump(definition_payload),
    )


def build_enhancement_prompt(
    entry_payload: Mapping[str, Any], focus_areas: Iterable[str], language: str
) -> str:
    focus = list(focus_areas)
    shape = "\n".join(_ENHANCEMENT_SHAPES[area] for area in focus if area in _ENHANCEMENT_SHAPES)
    return _ENHANCEMENT_TEMPLATE.format(
        entry_json=_dump(entry_payload),
        focus=", ".join(focus),
        language_label=language_label(language),
        shape=shape,
    )


def build_related_terms_prompt(term: str, definition: str) -> str:
    return _RELATED_TERMS_TEMPLATE.format(term=term, definition=definition)


def _dump(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str)
