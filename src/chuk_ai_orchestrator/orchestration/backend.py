# chuk_ai_orchestrator/orchestration/backend.py
"""
Inference backends.

The Orchestrator only depends on the InferenceBackend protocol. Two
implementations ship with the package:

- OpenRouterBackend: one OpenAI-compatible client in front of every model
  in the catalog (OpenRouter routes by model id).
- EchoBackend: offline stand-in that answers without a network call.

Usage::

    backend = OpenRouterBackend()  # reads OPENROUTER_API_KEY
    reply = await backend.invoke("openai/gpt-4o", "Explain CAP", max_tokens=500)
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from openai import APIError, AsyncOpenAI

from chuk_ai_orchestrator.config import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    OPENROUTER_API_KEY,
    OPENROUTER_BASE_URL,
)
from chuk_ai_orchestrator.exceptions import TransportError
from chuk_ai_orchestrator.models import BackendResponse

logger = logging.getLogger(__name__)


@runtime_checkable
class InferenceBackend(Protocol):
    """Anything that can turn a prompt into text for a given backend id."""

    async def invoke(
        self,
        backend_id: str,
        prompt: str,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> BackendResponse: ...


class OpenRouterBackend:
    """Chat-completions over OpenRouter's OpenAI-compatible API."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = OPENROUTER_BASE_URL,
        client: AsyncOpenAI | None = None,
    ) -> None:
        if client is None:
            api_key = api_key or OPENROUTER_API_KEY
            if not api_key:
                raise ValueError("OPENROUTER_API_KEY is not set; pass api_key or use EchoBackend")
            client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.client = client

    async def invoke(
        self,
        backend_id: str,
        prompt: str,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> BackendResponse:
        try:
            response = await self.client.chat.completions.create(
                model=backend_id,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except APIError as e:
            raise TransportError(backend_id, str(e)) from e

        if not response.choices:
            raise TransportError(backend_id, "empty response")
        text = response.choices[0].message.content
        if not text:
            raise TransportError(backend_id, "response had no content")

        tokens = response.usage.total_tokens if response.usage else 0
        return BackendResponse(text=text, tokens_used=tokens)

    async def close(self) -> None:
        await self.client.close()


class EchoBackend:
    """
    Offline backend that echoes a prefix of the prompt.

    Useful for demos and smoke tests without network access.
    """

    def __init__(self, prefix: str = "[echo]", max_chars: int = 200) -> None:
        self.prefix = prefix
        self.max_chars = max_chars
        self.calls: list[str] = []

    async def invoke(
        self,
        backend_id: str,
        prompt: str,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> BackendResponse:
        self.calls.append(backend_id)
        text = f"{self.prefix} {backend_id}: {prompt[: self.max_chars]}"
        return BackendResponse(text=text, tokens_used=len(text.split()))
