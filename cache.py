"""Read-through query cache keyed by (entity type, scope...).

Views load derived data through ``get_or_load`` and every successful
mutation drops the affected scope with ``invalidate``.

Usage:
    from cache import init_cache, get_cache
    init_cache(app)                       # once, in create_app()
    cache = get_cache()
    cache.get_or_load(('standings', board.id), lambda: compute(board))
    cache.invalidate('standings')         # every board
    cache.invalidate('daily_stats', 7)    # one user's daily stats
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Hashable

from flask import Flask, current_app

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300


class QueryCache:
    """Process-local cache; entries also expire after ``ttl`` seconds."""

    def __init__(self, default_ttl: int = DEFAULT_TTL) -> None:
        self._store: dict[tuple, tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self.default_ttl = default_ttl

    def get(self, key: tuple) -> Any | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            expires, value = entry
            if expires < time.monotonic():
                del self._store[key]
                return None
            return value

    def set(self, key: tuple, value: Any, ttl: int | None = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._store[key] = (time.monotonic() + ttl, value)

    def get_or_load(self, key: tuple, loader: Callable[[], Any], ttl: int | None = None) -> Any:
        value = self.get(key)
        if value is not None:
            return value
        value = loader()
        self.set(key, value, ttl)
        return value

    def invalidate(self, *scope: Hashable) -> int:
        """Drop every key starting with ``scope``. Returns the number dropped."""
        n = len(scope)
        with self._lock:
            stale = [k for k in self._store if k[:n] == scope]
            for k in stale:
                del self._store[k]
        if stale:
            logger.debug("Invalidated %d cache entries for %s", len(stale), scope)
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        return len(self._store)


def init_cache(app: Flask) -> QueryCache:
    cache = QueryCache(app.config.get("QUERY_CACHE_TTL", DEFAULT_TTL))
    app.extensions["query_cache"] = cache
    return cache


def get_cache() -> QueryCache:
    return current_app.extensions["query_cache"]
