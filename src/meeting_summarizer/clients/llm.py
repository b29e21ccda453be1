"""Client for an OpenAI-compatible chat-completions endpoint (Groq by default)."""
from __future__ import annotations
import logging
from typing import Any, Sequence

import httpx

from meeting_summarizer.common.config import Settings
from meeting_summarizer.common.errors import ConfigurationError, UpstreamError
from meeting_summarizer.common.schema import ChatMessage, Completion

LOGGER = logging.getLogger("meeting_summarizer.clients.llm")

TEMPERATURE = 0.2
MAX_TOKENS = 1500


def _as_count(value: Any) -> int:
    try:
        return max(int(value or 0), 0)
    except (TypeError, ValueError):
        return 0


def parse_completion(data: Any) -> Completion:
    """Pull the first choice's text and the usage counters out of a response body.

    Structurally absent fields default to "" and 0.
    """
    content: Any = ""
    usage: Any = {}
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
            if isinstance(message, dict):
                content = message.get("content") or ""
        usage = data.get("usage") or {}
    if not isinstance(usage, dict):
        usage = {}
    return Completion(
        content=content if isinstance(content, str) else str(content),
        prompt_tokens=_as_count(usage.get("prompt_tokens")),
        completion_tokens=_as_count(usage.get("completion_tokens")),
    )


class LLMClient:
    """Issues one blocking chat-completions call per summary."""

    provider = "Groq"

    def __init__(
        self,
        api_key: str | None,
        model: str,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "LLMClient":
        return cls(
            api_key=settings.groq_api_key,
            model=settings.groq_model,
            base_url=settings.llm_base_url,
            timeout=settings.http_timeout_seconds,
        )

    def complete(self, messages: Sequence[ChatMessage]) -> Completion:
        if not self.api_key:
            raise ConfigurationError("GROQ_API_KEY is not configured")

        url = f"{self.base_url}/chat/completions"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        payload = {
            "model": self.model,
            "messages": [m.as_dict() for m in messages],
            "temperature": TEMPERATURE,
            "max_tokens": MAX_TOKENS,
        }

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                r = client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            raise UpstreamError(self.provider, None, str(e)) from e

        if not r.is_success:
            raise UpstreamError(self.provider, r.status_code, r.text)

        try:
            data = r.json()
        except ValueError as e:
            raise UpstreamError(self.provider, r.status_code, r.text) from e

        completion = parse_completion(data)
        LOGGER.debug(
            "Completion received: prompt_tokens=%s completion_tokens=%s",
            completion.prompt_tokens,
            completion.completion_tokens,
        )
        return completion
