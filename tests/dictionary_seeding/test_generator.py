import json

import pytest

from src.functions.dictionary_seeding.core.errors import BackendError, GenerationError
from src.functions.dictionary_seeding.core.generation import DictionaryGenerator, QualityValidator
from tests.dictionary_seeding.fakes import NOW, FakeBackend, make_entry

FULL_DEFINITION = json.dumps({
    "concise": "A fast, lively tempo.",
    "detailed": "Allegro indicates a brisk tempo, usually between 120 and 156 beats per minute.",
    "etymology": "Italian for 'cheerful'.",
    "pronunciation": {"ipa": "/əˈleɪɡroʊ/", "syllables": ["al", "le", "gro"]},
    "usage_example": "The first movement is marked allegro.",
})
BOTH_REFERENCES = json.dumps({"wikipedia_search": "Allegro", "youtube_search": "allegro tempo"})
NO_REFERENCES = "{}"


def _generator(responses, threshold=70, with_validator=False):
    backend = FakeBackend(responses)
    validator = QualityValidator(backend) if with_validator else None
    return DictionaryGenerator(backend, validator=validator, quality_threshold=threshold, clock=lambda: NOW), backend


def test_generate_returns_entry_meeting_threshold():
    generator, backend = _generator([FULL_DEFINITION, BOTH_REFERENCES])

    entry = generator.generate(
        "Allegro",
        "es",
        context={"requested_by": "seed_processor", "instruments": ["piano"]},
        term_type="tempo",
    )

    assert entry.normalized_term == "allegro"
    assert entry.language == "es"
    assert entry.type == "tempo"
    assert entry.quality_score.overall == 70
    assert entry.quality_score.confidence_level == "medium"
    assert entry.references.wikipedia.url == "https://es.wikipedia.org/wiki/Allegro"
    assert entry.references.media.youtube[0].url == (
        "https://www.youtube.com/results?search_query=allegro+tempo"
    )
    assert entry.metadata.language == "es"
    assert entry.metadata.instruments == ["piano"]
    assert entry.metadata.generation_context["requested_by"] == "seed_processor"
    assert "Spanish" in backend.prompts[0]


def test_validator_can_lift_a_low_heuristic_score():
    generator, backend = _generator(
        [FULL_DEFINITION, NO_REFERENCES, json.dumps({"score": 82, "issues": []})],
        with_validator=True,
    )

    entry = generator.generate("Allegro")

    assert entry.quality_score.overall == 82
    assert entry.quality_score.confidence_level == "high"
    assert len(backend.prompts) == 3


def test_generate_gives_up_after_three_low_quality_attempts():
    generator, backend = _generator([FULL_DEFINITION, NO_REFERENCES] * 3)

    with pytest.raises(GenerationError, match="acceptable quality"):
        generator.generate("Allegro")

    assert len(backend.prompts) == 6


def test_invalid_definition_consumes_an_attempt():
    generator, backend = _generator(
        ['{"concise": "Fast."}', FULL_DEFINITION, BOTH_REFERENCES]
    )

    entry = generator.generate("Allegro")

    assert entry.definition.concise == "A fast, lively tempo."
    assert len(backend.prompts) == 3


def test_backend_failures_on_every_attempt_surface_as_backend_error():
    generator, _ = _generator([BackendError("connection reset")] * 3)

    with pytest.raises(BackendError, match="API error"):
        generator.generate("Allegro")


def test_reference_failures_fall_back_to_empty_references():
    generator, _ = _generator([FULL_DEFINITION, BackendError("rate limit exceeded")], threshold=60)

    entry = generator.generate("Allegro")

    assert entry.references.count() == 0
    assert entry.quality_score.overall == 60


def test_unknown_term_type_falls_back_to_general():
    generator, _ = _generator([FULL_DEFINITION, BOTH_REFERENCES])

    assert generator.generate("Allegro", term_type="spaceship").type == "general"


def test_enhance_returns_new_version_when_fields_are_added():
    entry = make_entry("Allegro", score=55)
    generator, _ = _generator([
        json.dumps({
            "definition": {
                "concise": "A quick tempo.",
                "detailed": "Fast.",
                "usage_example": "Play the coda allegro.",
            }
        })
    ])

    enhanced = generator.enhance(entry, ["definition"])

    assert enhanced is not None
    assert enhanced.version == entry.version + 1
    assert enhanced.definition.concise == "A quick tempo."
    assert enhanced.definition.detailed == entry.definition.detailed
    assert enhanced.definition.usage_example == "Play the coda allegro."
    assert enhanced.quality_score.overall == 55
    assert enhanced.updated_at == NOW


def test_enhance_returns_none_without_improvement():
    entry = make_entry("Allegro", score=90)
    generator, _ = _generator([
        json.dumps({"definition": {"concise": "A quick tempo.", "detailed": "Fast."}})
    ])

    assert generator.enhance(entry, ["definition"]) is None


def test_enhance_survives_backend_failure():
    entry = make_entry("Allegro", score=90)
    generator, _ = _generator([BackendError("boom"), BackendError("boom")])

    assert generator.enhance(entry) is None
