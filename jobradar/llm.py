"""Thin wrapper around an OpenAI-compatible chat endpoint (Groq by default)."""
from __future__ import annotations

import json
import re
from typing import Any

from openai import OpenAI

from jobradar.config import ConfigurationError, GROQ_BASE_URL, DEFAULT_MODEL
from jobradar.log import get_logger
from jobradar.retry import retry

log = get_logger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?|\n?```", re.IGNORECASE)


class LLMResponseError(ValueError):
    """The model reply did not contain the expected JSON."""


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def parse_json_object(text: str) -> dict[str, Any]:
    """Parse a JSON object out of a model reply.

    Markdown fences are removed first; if the remainder still is not valid
    JSON, the outermost ``{...}`` span is tried.
    """
    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        start = cleaned.find("{")
        end = cleaned.rfind("}") + 1
        if start == -1 or end <= start:
            raise LLMResponseError("LLM did not return valid JSON") from None
        try:
            data = json.loads(cleaned[start:end])
        except json.JSONDecodeError as exc:
            raise LLMResponseError(f"LLM did not return valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise LLMResponseError(f"Expected a JSON object, got {type(data).__name__}")
    return data


class LLMClient:
    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = GROQ_BASE_URL,
        client: Any = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("GROQ_API_KEY is not set")
        self.model = model
        self._client = client or OpenAI(api_key=api_key, base_url=base_url)

    @retry(max_attempts=2, base_delay=2.0, retryable=(Exception,))
    def complete(self, prompt: str, *, max_tokens: int = 2000, temperature: float = 0.2) -> str:
        r = self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        text = (r.choices[0].message.content or "").strip()
        log.debug("LLM raw response: %s...", text[:200])
        return text

    def complete_json(self, prompt: str, **kwargs: Any) -> dict[str, Any]:
        return parse_json_object(self.complete(prompt, **kwargs))
