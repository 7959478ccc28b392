"""OpenAI embeddings backend."""

from __future__ import annotations

from typing import Any

from ctxopt.embeddings.base import EmbeddingBackend
from ctxopt.exceptions import EmbeddingError


class OpenAIEmbeddingBackend(EmbeddingBackend):
    """Backend for OpenAI and OpenAI-compatible embedding APIs (Ollama, vLLM, etc.)."""

    name = "openai"

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: str | None = None,
        base_url: str | None = None,
    ) -> None:
        super().__init__(model, api_key, base_url)
        self._async_client = None

    def _get_client(self):
        if self._async_client is None:
            try:
                from openai import AsyncOpenAI
            except ImportError:
                from ctxopt.exceptions import ProviderNotAvailableError
                raise ProviderNotAvailableError("openai", "openai")

            kwargs: dict[str, Any] = {}
            if self.api_key:
                kwargs["api_key"] = self.api_key
            if self.base_url:
                kwargs["base_url"] = self.base_url
            self._async_client = AsyncOpenAI(**kwargs)
        return self._async_client

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        client = self._get_client()
        try:
            response = await client.embeddings.create(model=self.model, input=texts)
        except Exception as e:
            raise EmbeddingError(f"OpenAI embeddings request failed: {e}") from e

        # The API returns items tagged with their input index
        data = sorted(response.data, key=lambda d: d.index)
        return [list(d.embedding) for d in data]
