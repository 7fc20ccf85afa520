"""TTL cache for registry documents.

Sits beneath the manifest fetcher so that repeated lookups of the same
package document (dist-tags for every version of a package, retries after
a fallback) hit the network once per run.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A single cache entry with TTL."""

    value: T
    expires_at: float
    created_at: float = field(default_factory=time.time)

    def is_expired(self) -> bool:
        """Check if this entry has expired."""
        return time.time() > self.expires_at


class ResponseCache:
    """TTL cache for parsed registry responses keyed by URL."""

    def __init__(self, default_ttl: int = 300, max_entries: int = 5000):
        """Initialize the response cache.

        Args:
            default_ttl: Default time-to-live in seconds.
            max_entries: Entry count above which the oldest tenth is evicted.
        """
        self._default_ttl = default_ttl
        self._max_entries = max_entries
        self._cache: Dict[str, CacheEntry[Any]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, url: str) -> Optional[Any]:
        """Get a cached document, or None if not found/expired."""
        with self._lock:
            entry = self._cache.get(url)
            if entry is None:
                self.misses += 1
                return None
            if entry.is_expired():
                del self._cache[url]
                self.misses += 1
                return None
            self.hits += 1
            return entry.value

    def set(self, url: str, value: Any, ttl: Optional[int] = None) -> None:
        """Cache a document.

        Args:
            url: Request URL.
            value: Parsed response body.
            ttl: Optional TTL override in seconds.
        """
        effective_ttl = ttl if ttl is not None else self._default_ttl
        with self._lock:
            self._cache[url] = CacheEntry(value=value, expires_at=time.time() + effective_ttl)
            if len(self._cache) > self._max_entries:
                self._evict_oldest(max(1, self._max_entries // 10))

    def clear(self) -> None:
        """Clear all cached responses."""
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            expired_count = sum(1 for e in self._cache.values() if e.is_expired())
            return {
                "total_entries": len(self._cache),
                "expired_entries": expired_count,
                "hits": self.hits,
                "misses": self.misses,
                "default_ttl": self._default_ttl,
            }

    def _evict_oldest(self, count: int) -> None:
        """Evict the oldest entries; caller holds the lock."""
        sorted_urls = sorted(self._cache, key=lambda u: self._cache[u].created_at)
        for url in sorted_urls[:count]:
            del self._cache[url]
