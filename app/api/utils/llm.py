from __future__ import annotations

import logging
from typing import List, Optional, Protocol

from openai import AsyncOpenAI

from config import (
    APP_URL,
    CHAT_MODEL,
    EMBEDDING_MODEL,
    OPENAI_API_KEY,
    OPENROUTER_API_KEY,
    OPENROUTER_BASE_URL,
)

logger = logging.getLogger(__name__)


class LLMConfigurationError(RuntimeError):
    """A required API key is missing, so no client can be built."""


class CompletionService(Protocol):
    async def complete(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str: ...


class EmbeddingService(Protocol):
    async def embed(self, text: str) -> List[float]: ...


class OpenAICompletion:
    """Chat Completions over any OpenAI-compatible endpoint (OpenAI itself, OpenRouter)."""

    def __init__(self, client: AsyncOpenAI, default_model: str = CHAT_MODEL, name: str = "openai"):
        self._client = client
        self.default_model = default_model
        self.name = name

    async def complete(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        kwargs = {}
        if temperature is not None:
            kwargs["temperature"] = temperature
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        chat = await self._client.chat.completions.create(
            model=model or self.default_model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            **kwargs,
        )
        return (chat.choices[0].message.content or "").strip()

    async def aclose(self) -> None:
        await self._client.close()


class OpenAIEmbedding:
    def __init__(self, client: AsyncOpenAI, model: str = EMBEDDING_MODEL):
        self._client = client
        self.model = model

    async def embed(self, text: str) -> List[float]:
        resp = await self._client.embeddings.create(input=[text], model=self.model)
        if not resp.data:
            return []
        return list(resp.data[0].embedding)


def build_openai_client(api_key: Optional[str] = None) -> AsyncOpenAI:
    key = api_key or OPENAI_API_KEY
    if not key:
        raise LLMConfigurationError("OPENAI_API_KEY not set")
    return AsyncOpenAI(api_key=key)


def build_openrouter_completion(api_key: Optional[str] = None, model: Optional[str] = None) -> Optional[OpenAICompletion]:
    """OpenRouter backend for the router; None when no key is configured."""
    key = api_key or OPENROUTER_API_KEY
    if not key:
        return None
    client = AsyncOpenAI(
        api_key=key,
        base_url=OPENROUTER_BASE_URL,
        default_headers={"HTTP-Referer": APP_URL},
    )
    return OpenAICompletion(client, default_model=model or CHAT_MODEL, name="openrouter")
