"""Generic HTTP embeddings endpoint.

Speaks the minimal contract: POST `{"texts": [...]}`, receive
`{"embeddings": [[...], ...]}` in input order.
"""

from __future__ import annotations

import asyncio

import requests

from ctxopt.embeddings.base import EmbeddingBackend
from ctxopt.exceptions import EmbeddingError


class HTTPEmbeddingBackend(EmbeddingBackend):
    """Backend that calls a JSON embeddings endpoint."""

    name = "http"

    def __init__(
        self,
        endpoint_url: str,
        api_key: str | None = None,
        timeout_s: float = 30.0,
    ) -> None:
        super().__init__(model="remote", api_key=api_key, base_url=endpoint_url)
        self.endpoint_url = endpoint_url
        self.timeout_s = timeout_s

    def _post(self, texts: list[str]) -> list[list[float]]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            response = requests.post(
                self.endpoint_url,
                json={"texts": texts},
                headers=headers,
                timeout=self.timeout_s,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise EmbeddingError(f"Embedding endpoint request failed: {e}") from e
        except ValueError as e:
            raise EmbeddingError(f"Embedding endpoint returned invalid JSON: {e}") from e

        embeddings = data.get("embeddings") if isinstance(data, dict) else None
        if not isinstance(embeddings, list):
            error = data.get("error") if isinstance(data, dict) else None
            raise EmbeddingError(f"Embedding endpoint returned no embeddings: {error or data!r}")
        return embeddings

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return await asyncio.to_thread(self._post, texts)
