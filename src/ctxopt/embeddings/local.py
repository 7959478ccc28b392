"""Deterministic local embeddings (hashed term frequency).

Used as the fallback whenever the remote provider is unavailable, and as the
"local" backend when no provider is configured. No ML model, no network.
"""

from __future__ import annotations

import re

import numpy as np

DEFAULT_DIMENSION = 128

_NON_WORD_RE = re.compile(r"[^\w\s]")


def hash_string(text: str) -> int:
    """31-multiplier string hash wrapped to a signed 32-bit integer.

    Stable across processes, unlike the builtin `hash()`.
    """
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def tokenize(text: str) -> list[str]:
    """Lowercase, strip punctuation, drop tokens of two characters or fewer."""
    cleaned = _NON_WORD_RE.sub(" ", text.lower())
    return [t for t in cleaned.split() if len(t) > 2]


def local_embedding(text: str, dimension: int = DEFAULT_DIMENSION) -> list[float]:
    """Embed text as an L2-normalized hashed term-frequency vector."""
    tokens = tokenize(text)
    vec = np.zeros(dimension)
    if not tokens:
        return vec.tolist()

    term_freq: dict[str, int] = {}
    for token in tokens:
        term_freq[token] = term_freq.get(token, 0) + 1

    total = len(tokens)
    for term, freq in term_freq.items():
        idx = abs(hash_string(term)) % dimension
        vec[idx] += freq / total

    norm = np.linalg.norm(vec)
    if norm > 0:
        vec /= norm
    return vec.tolist()
