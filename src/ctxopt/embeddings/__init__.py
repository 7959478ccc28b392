"""Text embeddings: remote backends, local fallback, cache and similarity search."""

from ctxopt.embeddings.base import EmbeddingBackend, LocalBackend, SimilarityResult
from ctxopt.embeddings.cache import EmbeddingCache, cache_key
from ctxopt.embeddings.factory import create_backend
from ctxopt.embeddings.local import local_embedding
from ctxopt.embeddings.provider import EmbeddingProvider, cosine_similarity

__all__ = [
    "EmbeddingBackend",
    "EmbeddingCache",
    "EmbeddingProvider",
    "LocalBackend",
    "SimilarityResult",
    "cache_key",
    "cosine_similarity",
    "create_backend",
    "local_embedding",
]
