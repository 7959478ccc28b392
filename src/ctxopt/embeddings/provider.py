"""Embedding provider with caching and a deterministic local fallback.

Every call returns vectors. When the backend fails (raises, times out, or
returns malformed data) the affected texts are embedded locally instead, and
the failure is logged rather than propagated.
"""

from __future__ import annotations

import asyncio
import logging
import math
from numbers import Real

import numpy as np

from ctxopt.config import EmbeddingConfig
from ctxopt.embeddings.base import EmbeddingBackend, LocalBackend, SimilarityResult
from ctxopt.embeddings.cache import EmbeddingCache, cache_key
from ctxopt.embeddings.local import DEFAULT_DIMENSION, local_embedding

logger = logging.getLogger("ctxopt.embeddings")


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity of two vectors.

    Returns 0.0 when the lengths differ or either vector has zero norm.
    """
    if len(a) != len(b) or not a:
        return 0.0

    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    sim = float(np.dot(va, vb) / (norm_a * norm_b))
    return max(-1.0, min(1.0, sim))


def _is_vector(value: object) -> bool:
    if not isinstance(value, (list, tuple)) or not value:
        return False
    return all(
        isinstance(x, Real) and not isinstance(x, bool) and math.isfinite(x)
        for x in value
    )


class EmbeddingProvider:
    """Turns text into vectors through a backend, with cache and fallback.

    Usage:
        provider = EmbeddingProvider.from_config(config.embedding)
        vector = await provider.embed("login form validation")
        ranked = await provider.find_similar("login", candidates, top_k=5)
    """

    def __init__(
        self,
        backend: EmbeddingBackend | None = None,
        cache: EmbeddingCache | None = None,
        timeout_s: float | None = 30.0,
        dimension: int = DEFAULT_DIMENSION,
    ) -> None:
        self.backend = backend or LocalBackend(dimension=dimension)
        self.cache = cache if cache is not None else EmbeddingCache()
        self.timeout_s = timeout_s
        self.dimension = dimension

    @classmethod
    def from_config(cls, config: EmbeddingConfig) -> EmbeddingProvider:
        from ctxopt.embeddings.factory import create_backend

        return cls(
            backend=create_backend(config),
            cache=EmbeddingCache(config.cache_size, config.promote_on_hit),
            timeout_s=config.timeout_s,
            dimension=config.dimension,
        )

    def local_embedding(self, text: str) -> list[float]:
        return local_embedding(text, self.dimension)

    def clear_cache(self) -> None:
        self.cache.clear()

    # -------------------------------------------------------------------
    # Embedding
    # -------------------------------------------------------------------

    async def embed(self, text: str) -> list[float]:
        """Embed one text (cached)."""
        key = cache_key(text)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        vectors = await self._call_backend([text])
        vector = vectors[0] if vectors else None
        if vector is None:
            return self.local_embedding(text)

        self.cache.put(key, vector)
        return vector

    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts with a single backend call for the cache misses."""
        if not texts:
            return []

        results: list[list[float] | None] = [self.cache.get(cache_key(t)) for t in texts]
        missing = [i for i, vec in enumerate(results) if vec is None]
        if not missing:
            return results  # type: ignore[return-value]

        vectors = await self._call_backend([texts[i] for i in missing])

        fallbacks = 0
        for pos, original_idx in enumerate(missing):
            vector = vectors[pos] if vectors is not None else None
            if vector is None:
                results[original_idx] = self.local_embedding(texts[original_idx])
                fallbacks += 1
                continue
            results[original_idx] = vector
            self.cache.put(cache_key(texts[original_idx]), vector)

        if fallbacks:
            logger.warning(
                f"Embedded {fallbacks}/{len(missing)} text(s) locally after provider failure"
            )
        return results  # type: ignore[return-value]

    async def _call_backend(self, texts: list[str]) -> list[list[float] | None] | None:
        """One backend round trip.

        Returns None when the whole call failed, otherwise one entry per input
        text where malformed vectors are replaced by None.
        """
        try:
            call = self.backend.embed_batch(texts)
            if self.timeout_s:
                raw = await asyncio.wait_for(call, timeout=self.timeout_s)
            else:
                raw = await call
        except asyncio.TimeoutError:
            logger.warning(
                f"Embedding backend '{self.backend.name}' timed out after {self.timeout_s}s; "
                f"using local fallback"
            )
            return None
        except Exception as e:
            logger.warning(
                f"Embedding backend '{self.backend.name}' failed: {e}; using local fallback"
            )
            return None

        if not isinstance(raw, (list, tuple)):
            logger.warning(f"Embedding backend '{self.backend.name}' returned {type(raw).__name__}")
            return None
        if len(raw) != len(texts):
            logger.warning(
                f"Embedding backend '{self.backend.name}' returned {len(raw)} vectors "
                f"for {len(texts)} texts"
            )

        checked: list[list[float] | None] = []
        for i in range(len(texts)):
            vector = raw[i] if i < len(raw) else None
            checked.append([float(x) for x in vector] if _is_vector(vector) else None)
        return checked

    # -------------------------------------------------------------------
    # Similarity search
    # -------------------------------------------------------------------

    async def find_similar(
        self, query: str, candidates: list[str], top_k: int = 5
    ) -> list[SimilarityResult]:
        """Rank candidates by cosine similarity to the query.

        The query and all candidates are embedded in one batch. Results are
        sorted by descending score; equal scores keep their input order.
        """
        if not candidates or top_k <= 0:
            return []

        vectors = await self.embed_many([query, *candidates])
        query_vec, candidate_vecs = vectors[0], vectors[1:]

        scored = [
            SimilarityResult(text=text, score=cosine_similarity(query_vec, vec), index=idx)
            for idx, (text, vec) in enumerate(zip(candidates, candidate_vecs))
        ]
        scored.sort(key=lambda r: r.score, reverse=True)
        return scored[:top_k]
