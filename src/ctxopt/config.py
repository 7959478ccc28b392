"""Configuration management for ctxopt."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ctxopt.exceptions import ConfigError

CTXOPT_DIR = ".ctxopt"
CONFIG_FILE = "config.json"


class ChunkerConfig(BaseModel):
    """Chunking thresholds (in characters)."""

    max_chunk_size: int = 1500
    overlap: int = 100

    @field_validator("overlap")
    @classmethod
    def _overlap_below_size(cls, v: int, info) -> int:
        size = info.data.get("max_chunk_size", 1500)
        if v < 0 or v >= size:
            raise ValueError("overlap must be >= 0 and smaller than max_chunk_size")
        return v


class EmbeddingConfig(BaseModel):
    """Embedding provider configuration."""

    provider: str = "local"  # "local", "openai" or "http"
    model: str = "text-embedding-3-small"
    api_key_env: str = ""
    base_url: str | None = None
    endpoint_url: str | None = None  # for the "http" provider
    timeout_s: float = 30.0
    cache_size: int = 100
    promote_on_hit: bool = False  # True = strict LRU
    dimension: int = 128  # local fallback vector size

    @property
    def api_key(self) -> str | None:
        if self.api_key_env:
            return os.environ.get(self.api_key_env)
        env_map = {
            "openai": "OPENAI_API_KEY",
            "http": "CTXOPT_EMBEDDINGS_KEY",
        }
        env_var = env_map.get(self.provider, "")
        return os.environ.get(env_var) if env_var else None


class TierConfig(BaseModel):
    """Selection limits for one complexity tier."""

    file_limit: int
    token_fraction: float

    @field_validator("token_fraction")
    @classmethod
    def _fraction_in_range(cls, v: float) -> float:
        if not 0 < v <= 1:
            raise ValueError("token_fraction must be in (0, 1]")
        return v


def _default_tiers() -> dict[str, TierConfig]:
    return {
        "trivial": TierConfig(file_limit=2, token_fraction=0.3),
        "simple": TierConfig(file_limit=5, token_fraction=0.5),
        "moderate": TierConfig(file_limit=10, token_fraction=0.7),
        "complex": TierConfig(file_limit=15, token_fraction=1.0),
    }


class OptimizerConfig(BaseModel):
    """Context optimizer tuning knobs.

    The fusion weights and tier fractions are empirical; tune them against
    your own corpus.
    """

    max_tokens: int = 20000
    min_score: float = 5.0
    lexical_weight: float = 0.6
    embedding_weight: float = 0.4
    embedding_candidates: int = 20
    preview_chars: int = 500
    min_files_for_embeddings: int = 5
    full_threshold: float = 0.8  # pass files through whole below this share of max_tokens
    chunk_threshold: float = 0.9  # chunk budget as a share of max_tokens
    tiers: dict[str, TierConfig] = Field(default_factory=_default_tiers)
    critical_files: list[str] = Field(
        default_factory=lambda: [
            "index.html",
            "App.tsx",
            "main.tsx",
            "styles.css",
            "script.js",
        ]
    )

    @field_validator("lexical_weight", "embedding_weight")
    @classmethod
    def _non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("fusion weights must be non-negative")
        return v


class LoaderConfig(BaseModel):
    """Which files from disk make up a project snapshot."""

    exclude_patterns: list[str] = Field(
        default_factory=lambda: [
            "node_modules",
            "__pycache__",
            ".git",
            ".ctxopt",
            "dist",
            "build",
            ".venv",
            "venv",
            "*.min.js",
            "*.min.css",
            "*.map",
            "*.lock",
            "package-lock.json",
            "yarn.lock",
        ]
    )
    max_file_size_kb: int = 500
    include_extensions: list[str] = Field(
        default_factory=lambda: [
            ".tsx", ".ts", ".jsx", ".js", ".mjs", ".html", ".css", ".scss",
            ".json", ".md", ".py", ".txt", ".yaml", ".yml", ".toml", ".svg",
        ]
    )


class ProjectConfig(BaseModel):
    """Full project configuration."""

    name: str = ""
    root_path: str = "."
    chunker: ChunkerConfig = Field(default_factory=ChunkerConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    optimizer: OptimizerConfig = Field(default_factory=OptimizerConfig)
    loader: LoaderConfig = Field(default_factory=LoaderConfig)


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from `start` looking for a .ctxopt directory."""
    current = (start or Path.cwd()).resolve()
    while current != current.parent:
        if (current / CTXOPT_DIR).is_dir():
            return current
        current = current.parent
    if (current / CTXOPT_DIR).is_dir():
        return current
    return None


def get_ctxopt_dir(root: Path) -> Path:
    """Get the .ctxopt directory for a project root."""
    return root / CTXOPT_DIR


def load_config(root: Path) -> ProjectConfig:
    """Load configuration from .ctxopt/config.json."""
    config_path = get_ctxopt_dir(root) / CONFIG_FILE
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text())
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {config_path}: {e}") from e
        return ProjectConfig(**data)
    return ProjectConfig(name=root.name, root_path=str(root))


def save_config(root: Path, config: ProjectConfig) -> None:
    """Save configuration to .ctxopt/config.json."""
    cfg_dir = get_ctxopt_dir(root)
    cfg_dir.mkdir(parents=True, exist_ok=True)
    config_path = cfg_dir / CONFIG_FILE
    config_path.write_text(json.dumps(config.model_dump(), indent=2))


def set_config_value(config: ProjectConfig, key: str, value: Any) -> ProjectConfig:
    """Set a nested config value using dot notation (e.g., 'embedding.provider')."""
    parts = key.split(".")
    data = config.model_dump()
    target = data
    for part in parts[:-1]:
        if part not in target or not isinstance(target[part], dict):
            raise KeyError(f"Invalid config key: {key}")
        target = target[part]
    if parts[-1] not in target:
        raise KeyError(f"Invalid config key: {key}")
    target[parts[-1]] = value
    return ProjectConfig(**data)


def get_config_value(config: ProjectConfig, key: str) -> Any:
    """Read a nested config value using dot notation."""
    target: Any = config.model_dump()
    for part in key.split("."):
        if not isinstance(target, dict) or part not in target:
            raise KeyError(f"Invalid config key: {key}")
        target = target[part]
    return target
