"""Built-in catalog of high-priority terms for pre-populating the dictionary.

Terms commonly met in sight-reading and music education. Priorities run
1-10, higher first.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..contracts import normalize_term

DEFAULT_LANGUAGES = ("en", "es", "fr", "de", "zh-CN", "zh-TW")


@dataclass(frozen=True)
class SeedTerm:
    term: str
    type: str
    priority: int
    languages: tuple[str, ...] = field(default=DEFAULT_LANGUAGES)


def _group(term_type: str, *entries: tuple[str, int]) -> list[SeedTerm]:
    return [SeedTerm(term, term_type, priority) for term, priority in entries]


SEED_TERMS: list[SeedTerm] = [
    *_group(
        "tempo",
        ("Allegro", 10), ("Andante", 10), ("Adagio", 10),
        ("Presto", 9), ("Largo", 9), ("Moderato", 9),
    ),
    *_group(
        "dynamics",
        ("Forte", 10), ("Piano", 10), ("Mezzo forte", 9), ("Mezzo piano", 9),
        ("Fortissimo", 8), ("Pianissimo", 8), ("Crescendo", 9), ("Diminuendo", 9),
    ),
    *_group(
        "articulation",
        ("Staccato", 10), ("Legato", 10), ("Accent", 9), ("Tenuto", 8), ("Marcato", 8),
    ),
    *_group(
        "form",
        ("Sonata", 8), ("Fugue", 8), ("Rondo", 7), ("Minuet", 7), ("Scherzo", 7),
    ),
    *_group(
        "theory",
        ("Scale", 10), ("Chord", 10), ("Key signature", 10), ("Time signature", 10),
        ("Interval", 9), ("Octave", 9), ("Arpeggio", 8),
    ),
    *_group(
        "notation",
        ("Staff", 10), ("Clef", 10), ("Note", 10), ("Rest", 10),
        ("Sharp", 9), ("Flat", 9), ("Natural", 9),
    ),
    # "Piano" the instrument shares its backlog row with the dynamic marking
    *_group("instrument", ("Guitar", 10), ("Violin", 9), ("Flute", 8)),
    *_group("technique", ("Vibrato", 8), ("Tremolo", 7), ("Glissando", 7), ("Pizzicato", 7)),
    *_group(
        "general",
        ("Rhythm", 10), ("Melody", 10), ("Harmony", 10), ("Tempo", 10),
        ("Beat", 9), ("Measure", 9), ("Bar", 9),
    ),
]

_BY_NORMALIZED_TERM = {normalize_term(seed.term): seed for seed in SEED_TERMS}


def lookup(term: str) -> Optional[SeedTerm]:
    return _BY_NORMALIZED_TERM.get(normalize_term(term))


def term_type_for(term: str) -> str:
    seed = lookup(term)
    return seed.type if seed else "general"


def high_priority_terms(min_priority: int = 8) -> list[SeedTerm]:
    """Catalog terms at or above ``min_priority``, highest first."""
    selected = [seed for seed in SEED_TERMS if seed.priority >= min_priority]
    return sorted(selected, key=lambda seed: seed.priority, reverse=True)
