"""Base embedding backend interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel


class SimilarityResult(BaseModel):
    """One candidate ranked against a query."""

    text: str
    score: float
    index: int


class EmbeddingBackend(ABC):
    """Abstract base for embedding backends.

    A backend turns a batch of texts into vectors, in input order. Any failure
    is reported by raising; `EmbeddingProvider` decides how to degrade.
    """

    name: str = "base"

    def __init__(self, model: str = "", api_key: str | None = None, base_url: str | None = None) -> None:
        self.model = model
        self.api_key = api_key
        self.base_url = base_url

    @abstractmethod
    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed a batch of texts, returning one vector per text."""
        ...


class LocalBackend(EmbeddingBackend):
    """Backend that never leaves the process: hashed term-frequency vectors."""

    name = "local"

    def __init__(self, dimension: int = 128) -> None:
        super().__init__(model=f"hashed-tf-{dimension}")
        self.dimension = dimension

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        from ctxopt.embeddings.local import local_embedding

        return [local_embedding(t, self.dimension) for t in texts]
