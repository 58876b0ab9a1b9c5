"""
Analysis Result Cache

In-memory LRU cache with TTL for analysis results.
Key = SHA-256(text + extra), where extra carries the catalog version,
scan mode and excluded phrases.

Repeated analysis of the same text returns the identical result object.
Map mutation is guarded by a threading lock; the compute callback runs
outside it, so two requests racing on the same new text may both compute
and the last write wins. That duplicate work is harmless because the
pipeline is deterministic.

Usage:
    from draftclear.cache import result_cache
    result = result_cache.get_or_compute(text, lambda: analyze(text), extra="local")
"""

from __future__ import annotations

import hashlib
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Optional

from draftclear.config import settings

_MISSING = object()


class ResultCache:
    """Thread-safe in-memory cache with LRU + TTL eviction."""

    def __init__(self, ttl_seconds: int = 3600, max_entries: int = 1000):
        self._cache: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @staticmethod
    def make_key(text: str, extra: str = "") -> str:
        """SHA-256 of the exact text plus context (catalog version, mode, exclusions)."""
        raw = f"{text}||{extra}"
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def get(self, text: str, extra: str = "") -> Optional[Any]:
        """Return the cached value if present and not expired."""
        value = self._lookup(self.make_key(text, extra))
        return None if value is _MISSING else value

    def _lookup(self, key: str) -> Any:
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return _MISSING

            ts, value = entry
            if self._ttl > 0 and time.monotonic() - ts > self._ttl:
                del self._cache[key]
                self._misses += 1
                return _MISSING

            self._cache.move_to_end(key)
            self._hits += 1
            return value

    def put(self, text: str, value: Any, extra: str = "") -> None:
        """Store a value. Evicts least-recently-used entries past capacity."""
        key = self.make_key(text, extra)
        with self._lock:
            self._cache[key] = (time.monotonic(), value)
            self._cache.move_to_end(key)
            while len(self._cache) > self._max_entries:
                self._cache.popitem(last=False)

    def get_or_compute(
        self,
        text: str,
        compute: Callable[[], Any],
        extra: str = "",
    ) -> Any:
        """Return the cached value for `text`, computing and storing it on a miss."""
        key = self.make_key(text, extra)
        value = self._lookup(key)
        if value is not _MISSING:
            return value

        value = compute()
        self.put(text, value, extra)
        return value

    def contains(self, text: str, extra: str = "") -> bool:
        key = self.make_key(text, extra)
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return False
            return not (self._ttl > 0 and time.monotonic() - entry[0] > self._ttl)

    def invalidate(self, text: str, extra: str = "") -> None:
        """Remove a specific entry."""
        key = self.make_key(text, extra)
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> int:
        """Drop every entry. Returns how many were removed."""
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
            self._hits = 0
            self._misses = 0
            return count

    @property
    def stats(self) -> dict:
        """Cache hit/miss statistics."""
        with self._lock:
            total = self._hits + self._misses
            return {
                "entries": len(self._cache),
                "max_entries": self._max_entries,
                "ttl_seconds": self._ttl,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / total, 3) if total > 0 else 0.0,
            }


# Singleton: shared across the application
result_cache = ResultCache(
    ttl_seconds=settings.CACHE_TTL_SECONDS,
    max_entries=settings.CACHE_MAX_ENTRIES,
)
