"""OpenAI chat-completions backend for dictionary generation."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Optional

from openai import (
    APIConnectionError,
    APIError,
    APITimeoutError,
    OpenAI,
    RateLimitError,
)
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from src.shared.utils.config_validator import ConfigurationError, check_config_override

from ..config import LLMConfig
from ..errors import BackendError
from .prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)

_DEFAULT_MAX_OUTPUT_TOKENS = 500
_DEFAULT_TEMPERATURE = 0.3


def estimate_tokens(text: Optional[str]) -> int:
    """Rough token count (~4 characters per token)."""
    return math.ceil(len(text or "") / 4)


def _is_connection_drop(exc: BaseException) -> bool:
    # APITimeoutError subclasses APIConnectionError but must not be retried here
    return isinstance(exc, APIConnectionError) and not isinstance(exc, APITimeoutError)


def _describe_api_error(exc: APIError) -> str:
    # Only the SDK error type and status reach the stored message; provider text is logged
    status = getattr(exc, "status_code", None)
    name = type(exc).__name__
    return f"{name} (status {status})" if status else name


@dataclass(frozen=True)
class BackendResponse:
    text: str
    tokens_used: int
    model: str


class OpenAIBackend:
    """Wraps chat completions with JSON output and token accounting.

    ``tokens_used`` is a running total across every call made through this
    instance, successful or not. Callers measure the cost of a unit of work as
    the difference between two readings.
    """

    def __init__(
        self,
        config: LLMConfig,
        *,
        client: Optional[OpenAI] = None,
    ) -> None:
        self._config = config
        if client is None:
            try:
                api_key = check_config_override(config.api_key, "OPENAI_API_KEY", required=True)
            except ConfigurationError as e:
                raise ConfigurationError(
                    f"{e}\nRequired for dictionary generation. "
                    "Set it in the environment or a .env file."
                )
            client = OpenAI(api_key=api_key)
        self._client = client
        self._tokens_used = 0

    @property
    def tokens_used(self) -> int:
        return self._tokens_used

    @property
    def model(self) -> str:
        return self._config.model

    def complete_json(
        self,
        prompt: str,
        *,
        max_output_tokens: int = _DEFAULT_MAX_OUTPUT_TOKENS,
        temperature: float = _DEFAULT_TEMPERATURE,
        model: Optional[str] = None,
    ) -> BackendResponse:
        """Send one prompt and return the raw text payload.

        Raises:
            BackendError: On timeout, rate limiting, API errors or an empty reply
        """
        model_name = model or self._config.model
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        prompt_tokens = estimate_tokens(SYSTEM_PROMPT) + estimate_tokens(prompt)

        try:
            response = self._create(
                model=model_name,
                messages=messages,
                max_tokens=max_output_tokens,
                temperature=temperature,
            )
        except APITimeoutError as exc:
            self._tokens_used += prompt_tokens
            logger.warning("Backend call timed out after %ss (model=%s)", self._config.timeout_seconds, model_name)
            raise BackendError(f"request timed out after {self._config.timeout_seconds}s", timeout=True) from exc
        except RateLimitError as exc:
            self._tokens_used += prompt_tokens
            logger.warning("Backend rate limit hit (model=%s): %s", model_name, exc)
            raise BackendError("rate limit exceeded") from exc
        except APIError as exc:
            self._tokens_used += prompt_tokens
            logger.error("OpenAI API error (model=%s): %s", model_name, exc)
            raise BackendError(_describe_api_error(exc)) from exc

        text = self._extract_text(response)
        self._tokens_used += self._usage_tokens(response, prompt_tokens, text)

        if not text.strip():
            raise BackendError("empty response from generative backend")

        return BackendResponse(text=text, tokens_used=self._tokens_used, model=model_name)

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=retry_if_exception(_is_connection_drop),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    def _create(self, **kwargs: Any) -> Any:
        client = self._client.with_options(timeout=float(self._config.timeout_seconds))
        return client.chat.completions.create(
            **kwargs,
            response_format={"type": "json_object"},
        )

    @staticmethod
    def _extract_text(response: Any) -> str:
        choices = getattr(response, "choices", None) or []
        for choice in choices:
            message = getattr(choice, "message", None)
            content = getattr(message, "content", None)
            if isinstance(content, str) and content:
                return content
        return ""

    @staticmethod
    def _usage_tokens(response: Any, prompt_tokens: int, text: str) -> int:
        usage = getattr(response, "usage", None)
        total = getattr(usage, "total_tokens", None)
        if isinstance(total, int) and total > 0:
            return total
        return prompt_tokens + estimate_tokens(text)
