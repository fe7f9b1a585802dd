"""Merge rules used when enhancing an existing entry."""

from __future__ import annotations

from typing import Callable, TypeVar

from ..contracts import Definition, DictionaryEntry, References

T = TypeVar("T")


def merge_definitions(original: Definition, enhanced: Definition) -> Definition:
    """Non-empty enhanced fields win; the detailed text keeps the longer version."""
    detailed = original.detailed
    if enhanced.detailed and len(enhanced.detailed) >= len(original.detailed):
        detailed = enhanced.detailed
    return Definition(
        concise=enhanced.concise or original.concise,
        detailed=detailed,
        etymology=enhanced.etymology or original.etymology,
        pronunciation=enhanced.pronunciation or original.pronunciation,
        usage_example=enhanced.usage_example or original.usage_example,
    )


def _union(existing: list[T], incoming: list[T], key: Callable[[T], str]) -> list[T]:
    merged = list(existing)
    seen = {key(item).strip().lower() for item in existing}
    for item in incoming:
        natural_key = key(item).strip().lower()
        if natural_key and natural_key not in seen:
            merged.append(item)
            seen.add(natural_key)
    return merged


def merge_references(original: References, enhanced: References) -> References:
    """Keep every original reference and add new ones by natural key."""
    return References(
        wikipedia=enhanced.wikipedia or original.wikipedia,
        books=_union(original.books, enhanced.books, lambda book: book.isbn),
        research_papers=_union(original.research_papers, enhanced.research_papers, lambda paper: paper.doi),
        media=enhanced.media or original.media,
        educational=_union(original.educational, enhanced.educational, lambda resource: resource.url),
    )


def added_new_fields(original: DictionaryEntry, enhanced: DictionaryEntry) -> bool:
    """Whether ``enhanced`` fills an optional field ``original`` lacked."""
    for name in ("usage_example", "etymology", "pronunciation"):
        if getattr(enhanced.definition, name) and not getattr(original.definition, name):
            return True
    return len(enhanced.metadata.related_terms) > len(original.metadata.related_terms)


def is_improvement(original: DictionaryEntry, enhanced: DictionaryEntry) -> bool:
    before = original.quality_score.overall
    after = enhanced.quality_score.overall
    return after > before or (after >= before and added_new_fields(original, enhanced))
