import pytest

from src.functions.dictionary_seeding.core.contracts import Definition
from src.functions.dictionary_seeding.core.llm import QualityVerdict, decode, extract_json


def test_extract_json_strips_fences_and_prose():
    text = 'Here you go:\n```json\n{"concise": "Fast.", "detailed": "A brisk tempo."}\n```\nEnjoy!'

    assert extract_json(text) == {"concise": "Fast.", "detailed": "A brisk tempo."}


def test_extract_json_finds_object_inside_prose():
    assert extract_json('Sure! {"score": 80} Hope this helps.') == {"score": 80}


@pytest.mark.parametrize("text", ["", "   ", "no braces here", "{not json}", "[1, 2]"])
def test_extract_json_rejects_unusable_text(text):
    with pytest.raises(ValueError):
        extract_json(text)


def test_decode_reports_missing_fields():
    result = decode('{"concise": "Fast."}', Definition)

    assert not result.ok
    assert result.value is None
    assert "Invalid Definition" in result.error
    assert "detailed" in result.error


def test_decode_reports_parse_failure():
    result = decode("I cannot help with that.", Definition)

    assert not result.ok
    assert "JSON object" in result.error


def test_decode_coerces_bare_pronunciation_and_blank_fields():
    result = decode(
        '{"concise": "Fast.", "detailed": "A brisk tempo.", "pronunciation": "/a/", "etymology": "  "}',
        Definition,
    )

    assert result.ok
    assert result.value.pronunciation.ipa == "/a/"
    assert result.value.etymology is None


@pytest.mark.parametrize("raw, expected", [(150, 100), ("-5", 0), (72.6, 73), (None, 0)])
def test_quality_verdict_clamps_score(raw, expected):
    assert QualityVerdict.model_validate({"score": raw}).score == expected
