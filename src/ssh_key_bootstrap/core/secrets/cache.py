"""In-process cache for resolved secrets."""

from __future__ import annotations

import threading
from collections.abc import Callable


class SecretsCache:
    """Thread-safe, process-lifetime cache of resolved secret values.

    Entries never expire and are never evicted: one run resolves a small,
    fixed set of references. Values are never persisted.
    """

    def __init__(self) -> None:
        self._cache: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        """Return the cached value for *key*, or ``None``."""
        with self._lock:
            return self._cache.get(key)

    def put(self, key: str, value: str) -> None:
        """Store *value* under *key*."""
        with self._lock:
            self._cache[key] = value

    def get_or_fetch(self, key: str, fetch: Callable[[], str]) -> str:
        """Return the cached value for *key*, calling *fetch* on a miss.

        The fetch runs outside the lock; concurrent misses for the same
        key may both fetch, and the last writer wins.
        """
        cached = self.get(key)
        if cached is not None:
            return cached
        value = fetch()
        self.put(key, value)
        return value

    def clear(self) -> None:
        """Clear all cached entries."""
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
