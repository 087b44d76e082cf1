"""
Analysis cache for the Vocalis analysis engine.

Provides a bounded in-memory LRU cache of analysis results keyed by
recording identity.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, Hashable, Optional

from vocalis.core.models import AnalysisResult
from vocalis.utils.errors import ConfigurationError

DEFAULT_CAPACITY: int = 10


@dataclass(frozen=True)
class CacheEntry:
    """A cached result and when it was stored."""

    result: AnalysisResult
    inserted_at: float


class AnalysisCache:
    """
    Thread-safe in-memory LRU cache for analysis results.

    Recency is the order of get/set calls. After every operation the cache
    holds at most ``capacity`` entries; when a set overflows it, exactly the
    least recently used entry is evicted.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        """
        Args:
            capacity: Maximum number of cached results

        Raises:
            ConfigurationError: If capacity is less than 1
        """
        if capacity < 1:
            raise ConfigurationError(
                f"Cache capacity must be at least 1, got {capacity}",
                config_key="cache.capacity",
            )
        self.capacity = capacity
        self._entries: "OrderedDict[Hashable, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()
        self.logger = logging.getLogger("cache")

        # Statistics
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: Hashable) -> Optional[AnalysisResult]:
        """
        Get the cached result for ``key`` and mark it most recently used.

        Returns:
            AnalysisResult if present, None otherwise
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            self._entries.move_to_end(key)
            self._hits += 1
            self.logger.debug(f"Cache hit: {key}")

            return entry.result

    def set(self, key: Hashable, result: AnalysisResult) -> None:
        """
        Store ``result`` under ``key`` as the most recently used entry.

        Overwriting an existing key never changes the entry count.
        """
        with self._lock:
            self._entries[key] = CacheEntry(result=result, inserted_at=time.time())
            self._entries.move_to_end(key)

            while len(self._entries) > self.capacity:
                oldest_key, _ = self._entries.popitem(last=False)
                self._evictions += 1
                self.logger.debug(f"Evicted: {oldest_key}")

            self.logger.debug(f"Cached: {key}")

    def delete(self, key: Hashable) -> bool:
        """
        Remove one entry.

        Returns:
            True if key was found and removed, False otherwise
        """
        with self._lock:
            if key in self._entries:
                del self._entries[key]
                return True
            return False

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._entries.clear()
            self.logger.info("Cache cleared")

    def inserted_at(self, key: Hashable) -> Optional[float]:
        """Epoch seconds at which ``key`` was last stored, without touching recency."""
        with self._lock:
            entry = self._entries.get(key)
            return entry.inserted_at if entry is not None else None

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dict with hits, misses, evictions, size, capacity and hit ratio
        """
        with self._lock:
            total = self._hits + self._misses
            hit_ratio = self._hits / total if total > 0 else 0.0

            return {
                'hits': self._hits,
                'misses': self._misses,
                'evictions': self._evictions,
                'size': len(self._entries),
                'capacity': self.capacity,
                'hit_ratio': hit_ratio,
            }

    @property
    def count(self) -> int:
        return len(self)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        """Check membership without updating LRU order."""
        with self._lock:
            return key in self._entries


def create_analysis_cache(config: Optional[Dict[str, Any]] = None) -> AnalysisCache:
    """
    Factory function to create AnalysisCache from the "cache" config section.
    """
    if config is None:
        config = {}

    return AnalysisCache(capacity=config.get('capacity', DEFAULT_CAPACITY))
