from types import SimpleNamespace

import httpx
import pytest
from openai import APIConnectionError, APITimeoutError, BadRequestError, RateLimitError

from src.functions.dictionary_seeding.core.config import LLMConfig
from src.functions.dictionary_seeding.core.errors import BackendError
from src.functions.dictionary_seeding.core.llm import OpenAIBackend, estimate_tokens
from src.functions.dictionary_seeding.core.llm.prompts import SYSTEM_PROMPT
from src.functions.dictionary_seeding.core.recovery import error_kind
from src.shared.utils.config_validator import ConfigurationError

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _completion(content, total_tokens=None):
    usage = SimpleNamespace(total_tokens=total_tokens) if total_tokens is not None else None
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=usage,
    )


class _FakeCompletions:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class _FakeOpenAIClient:
    def __init__(self, outcomes):
        self.completions = _FakeCompletions(outcomes)
        self.chat = SimpleNamespace(completions=self.completions)
        self.timeouts = []

    def with_options(self, timeout):
        self.timeouts.append(timeout)
        return self


def _backend(outcomes, **config):
    client = _FakeOpenAIClient(outcomes)
    return OpenAIBackend(LLMConfig(api_key="test-key", **config), client=client), client


def test_complete_json_accumulates_reported_usage():
    backend, client = _backend([_completion('{"a": 1}', 120), _completion('{"b": 2}', 80)])

    first = backend.complete_json("first prompt", max_output_tokens=300, temperature=0.1)
    second = backend.complete_json("second prompt")

    assert first.text == '{"a": 1}'
    assert first.tokens_used == 120
    assert second.tokens_used == 200
    assert backend.tokens_used == 200

    call = client.completions.calls[0]
    assert call["model"] == "gpt-4o-mini"
    assert call["max_tokens"] == 300
    assert call["temperature"] == 0.1
    assert call["response_format"] == {"type": "json_object"}
    assert call["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert client.timeouts == [60.0, 60.0]


def test_model_override_is_sent_and_reported():
    backend, client = _backend([_completion("{}", 10)])

    response = backend.complete_json("review", model="gpt-4o")

    assert client.completions.calls[0]["model"] == "gpt-4o"
    assert response.model == "gpt-4o"


def test_missing_usage_falls_back_to_estimate():
    backend, _ = _backend([_completion('{"concise": "Fast."}')])

    backend.complete_json("prompt text")

    expected = estimate_tokens(SYSTEM_PROMPT) + estimate_tokens("prompt text") + estimate_tokens('{"concise": "Fast."}')
    assert backend.tokens_used == expected


def test_timeout_becomes_backend_error_and_still_costs_tokens():
    backend, _ = _backend([APITimeoutError(request=_REQUEST)], timeout_seconds=30)

    with pytest.raises(BackendError, match="API timeout") as excinfo:
        backend.complete_json("prompt")

    assert excinfo.value.timeout is True
    assert "30s" in str(excinfo.value)
    assert backend.tokens_used > 0


def test_rate_limit_becomes_backend_error_without_provider_text():
    error = RateLimitError(
        "Rate limit reached for gpt-4o-mini on tokens per min (TPM): Limit 200000, Used 199500",
        response=httpx.Response(429, request=_REQUEST),
        body=None,
    )
    backend, _ = _backend([error])

    with pytest.raises(BackendError) as excinfo:
        backend.complete_json("prompt")

    assert str(excinfo.value) == "API error: rate limit exceeded"
    assert error_kind(str(excinfo.value)) == "api_error"


def test_status_errors_keep_only_type_and_status():
    error = BadRequestError(
        "This model's maximum context length is 128000 tokens",
        response=httpx.Response(400, request=_REQUEST),
        body=None,
    )
    backend, _ = _backend([error])

    with pytest.raises(BackendError) as excinfo:
        backend.complete_json("prompt")

    assert str(excinfo.value) == "API error: BadRequestError (status 400)"
    assert error_kind(str(excinfo.value)) == "api_error"


def test_connection_drop_is_retried_once():
    backend, client = _backend([APIConnectionError(request=_REQUEST), _completion("{}", 15)])

    response = backend.complete_json("prompt")

    assert response.text == "{}"
    assert len(client.completions.calls) == 2


def test_empty_reply_is_an_error():
    backend, _ = _backend([_completion("", 12)])

    with pytest.raises(BackendError, match="empty response"):
        backend.complete_json("prompt")

    assert backend.tokens_used == 12


def test_missing_api_key_is_a_configuration_error(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
        OpenAIBackend(LLMConfig())
