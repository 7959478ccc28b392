"""Capacity-bounded embedding cache."""

from __future__ import annotations

import hashlib
import threading
from collections import OrderedDict

# Only this many leading characters contribute to the cache key
KEY_PREFIX_CHARS = 200


def cache_key(text: str) -> str:
    """Short hash of the text's first 200 characters."""
    sample = text[:KEY_PREFIX_CHARS]
    return "emb_" + hashlib.sha256(sample.encode("utf-8")).hexdigest()[:16]


class EmbeddingCache:
    """Insertion-ordered vector cache shared by concurrent callers.

    When full, the oldest inserted entry is evicted. Reads do not refresh an
    entry's position unless `promote_on_hit` is set, which turns the policy into
    strict LRU. All access goes through a lock.
    """

    def __init__(self, capacity: int = 100, promote_on_hit: bool = False) -> None:
        self.capacity = capacity
        self.promote_on_hit = promote_on_hit
        self._entries: OrderedDict[str, list[float]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> list[float] | None:
        with self._lock:
            vector = self._entries.get(key)
            if vector is not None and self.promote_on_hit:
                self._entries.move_to_end(key)
            return vector

    def put(self, key: str, vector: list[float]) -> None:
        if self.capacity <= 0:
            return
        with self._lock:
            if key in self._entries:
                self._entries[key] = vector
                if self.promote_on_hit:
                    self._entries.move_to_end(key)
                return
            while len(self._entries) >= self.capacity:
                self._entries.popitem(last=False)
            self._entries[key] = vector

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
