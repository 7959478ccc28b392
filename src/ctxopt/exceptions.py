"""Custom exceptions for ctxopt."""


class CtxOptError(Exception):
    """Base exception for all ctxopt errors."""


class ConfigError(CtxOptError):
    """Configuration-related errors."""


class EmbeddingError(CtxOptError):
    """Embedding backend errors."""


class ProviderNotAvailableError(EmbeddingError):
    """Raised when an embedding backend's SDK is not installed."""

    def __init__(self, provider: str, package: str):
        super().__init__(
            f"Embedding provider '{provider}' requires the '{package}' package. "
            f"Install it with: pip install ctxopt[{provider}]"
        )


class OptimizationCancelled(CtxOptError):
    """Raised when the caller cancels a context optimization mid-pipeline."""
