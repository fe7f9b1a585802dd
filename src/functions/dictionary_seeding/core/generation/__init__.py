"""Entry generation, scoring and enhancement."""

from .generator import DEFAULT_FOCUS_AREAS, MAX_ATTEMPTS, DictionaryGenerator
from .merge import merge_definitions, merge_references
from .quality import QualityValidator, calculate_quality_score, confidence_for

__all__ = [
    "DEFAULT_FOCUS_AREAS",
    "MAX_ATTEMPTS",
    "DictionaryGenerator",
    "QualityValidator",
    "calculate_quality_score",
    "confidence_for",
    "merge_definitions",
    "merge_references",
]
