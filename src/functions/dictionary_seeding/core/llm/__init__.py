"""Generative backend access for dictionary seeding."""

from .openai_backend import BackendResponse, OpenAIBackend, estimate_tokens
from .parsing import (
    DecodeResult,
    EnhancedDefinition,
    EnhancedReferences,
    QualityVerdict,
    ReferenceSuggestions,
    RelatedTermsPayload,
    decode,
    extract_json,
)

__all__ = [
    "BackendResponse",
    "OpenAIBackend",
    "estimate_tokens",
    "DecodeResult",
    "EnhancedDefinition",
    "EnhancedReferences",
    "QualityVerdict",
    "ReferenceSuggestions",
    "RelatedTermsPayload",
    "decode",
    "extract_json",
]
