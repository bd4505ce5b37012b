"""
Transposition cache.

A bounded, thread-safe LRU map with an optional time-to-live. Entries are
whole-sheet results keyed by everything that can change the output, so a
hit is always identical to recomputing.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Hashable, Optional
import logging

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of cache counters."""
    hits: int
    misses: int
    evictions: int
    size: int
    max_size: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total


class LRUCache:
    """
    Least-recently-used cache.

    Features:
    - Fixed capacity, oldest entry evicted first
    - Optional TTL per entry
    - Hit/miss/eviction counters
    - Safe to share between threads
    """

    def __init__(self, max_size: int = 512, ttl: Optional[float] = None):
        """
        Initialize cache.

        Args:
            max_size: Maximum number of entries (must be positive)
            ttl: Seconds an entry stays valid, or None for no expiry
        """
        if max_size < 1:
            raise ValueError(f"Cache size must be positive, got {max_size}")
        if ttl is not None and ttl <= 0:
            raise ValueError(f"Cache TTL must be positive, got {ttl}")

        self.max_size = max_size
        self.ttl = ttl

        self._entries: "OrderedDict[Hashable, tuple[Any, Optional[float]]]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Get a value and mark it most recently used."""
        with self._lock:
            entry = self._entries.get(key, _MISSING)
            if entry is _MISSING:
                self._misses += 1
                return default

            value, expires_at = entry
            if expires_at is not None and time.monotonic() >= expires_at:
                del self._entries[key]
                self._misses += 1
                return default

            self._entries.move_to_end(key)
            self._hits += 1
            return value

    def put(self, key: Hashable, value: Any) -> None:
        """Store a value, evicting the least recently used entry when full."""
        expires_at = time.monotonic() + self.ttl if self.ttl is not None else None
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
            self._entries[key] = (value, expires_at)

            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)
                self._evictions += 1

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            entry = self._entries.get(key, _MISSING)
            if entry is _MISSING:
                return False
            expires_at = entry[1]
            return expires_at is None or time.monotonic() < expires_at

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        """Drop all entries and reset counters."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0
        logger.debug("Transposition cache cleared")

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                size=len(self._entries),
                max_size=self.max_size,
            )


# Shared cache used by transpose_text
_default_cache: Optional[LRUCache] = None
_default_cache_lock = threading.Lock()


def get_default_cache() -> Optional[LRUCache]:
    """
    Shared cache sized from the configuration.

    Returns:
        The cache, or None when caching is disabled in the config
    """
    global _default_cache
    from chord_transposer.config import get_config

    settings = get_config().cache
    if not settings.enabled:
        return None

    with _default_cache_lock:
        if _default_cache is None:
            _default_cache = LRUCache(settings.max_entries, settings.ttl_seconds)
            logger.debug(f"Created transposition cache (max {settings.max_entries} entries)")
        return _default_cache


def reset_default_cache() -> None:
    """Discard the shared cache; the next call builds a new one from the config."""
    global _default_cache
    with _default_cache_lock:
        _default_cache = None
