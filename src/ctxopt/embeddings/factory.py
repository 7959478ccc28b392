"""Factory for creating embedding backends from configuration."""

from __future__ import annotations

from ctxopt.config import EmbeddingConfig
from ctxopt.embeddings.base import EmbeddingBackend, LocalBackend


def create_backend(config: EmbeddingConfig) -> EmbeddingBackend:
    """Create an embedding backend from configuration.

    Args:
        config: Embedding configuration with provider, model, etc.

    Returns:
        An initialized embedding backend.

    Raises:
        ValueError: If the provider is unknown or misconfigured.
        ProviderNotAvailableError: If the provider's SDK is not installed.
    """
    provider = config.provider.lower()

    if provider == "local":
        return LocalBackend(dimension=config.dimension)
    elif provider == "openai":
        from ctxopt.embeddings.openai_backend import OpenAIEmbeddingBackend

        return OpenAIEmbeddingBackend(
            model=config.model,
            api_key=config.api_key,
            base_url=config.base_url,
        )
    elif provider == "http":
        if not config.endpoint_url:
            raise ValueError("The 'http' embedding provider requires embedding.endpoint_url")
        from ctxopt.embeddings.http_backend import HTTPEmbeddingBackend

        return HTTPEmbeddingBackend(
            endpoint_url=config.endpoint_url,
            api_key=config.api_key,
            timeout_s=config.timeout_s,
        )
    else:
        raise ValueError(
            f"Unknown embedding provider: '{provider}'. "
            f"Supported providers: local, openai, http"
        )
