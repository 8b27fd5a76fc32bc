"""Bounded TTL cache shared by the query processor and smart filters."""

import hashlib
import logging
import threading
import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any

from cachetools import TTLCache

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class BoundedTTLCache:
    """Size-capped cache with per-entry expiry.

    Wraps cachetools.TTLCache (LRU eviction once ``max_size`` is reached,
    lazy TTL expiration). The lock guards only the dict operations so it is
    safe to share between the event loop and worker threads; it is never
    held across I/O.
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl: float = 300.0,
        timer: Callable[[], float] = time.monotonic,
    ):
        """Initialize cache.

        Args:
            max_size: Maximum number of entries
            ttl: Time-to-live in seconds
            timer: Clock used for expiry (injectable for tests)
        """
        self._cache: TTLCache = TTLCache(maxsize=max_size, ttl=ttl, timer=timer)
        self._lock = threading.Lock()
        self.stats = CacheStats()
        self.max_size = max_size
        self.ttl = ttl

    @staticmethod
    def make_key(*parts: Any) -> str:
        """Build a stable hash key from arbitrary parts."""
        raw = "\x1f".join(str(part) for part in parts)
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def get(self, key: Hashable) -> Any | None:
        """Return the cached value, or None if missing or expired."""
        with self._lock:
            try:
                value = self._cache[key]
            except KeyError:
                self.stats.misses += 1
                return None
            self.stats.hits += 1
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._cache[key] = value

    def invalidate(self, key: Hashable) -> bool:
        with self._lock:
            return self._cache.pop(key, None) is not None

    def clear(self) -> int:
        """Drop every entry and return how many were removed."""
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
        logger.debug(f"Cleared {count} cache entries")
        return count

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._cache
