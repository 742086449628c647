"""Thread-safe LRU cache for merge results."""

import threading
from collections import OrderedDict
from typing import NamedTuple

from .errors import ConfigError


class CacheInfo(NamedTuple):
    """Hit/miss statistics of an :class:`LRUCache`."""

    hits: int
    misses: int
    size: int
    capacity: int


class LRUCache[K, V]:
    """
    Bounded mapping that evicts the least recently used entry.

    ``OrderedDict`` keeps the recency list: the most recently used key sits
    at the end, the eviction candidate at the front. Every get/set/evict
    sequence runs under one lock so concurrent encoders can share it.
    """

    def __init__(self, capacity: int = 50_000) -> None:
        if capacity <= 0:
            raise ConfigError(
                "cache capacity must be positive", option="capacity", value=capacity
            )
        self.capacity = capacity
        self._data: OrderedDict[K, V] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: K) -> V | None:
        """Return the cached value and mark it most recently used."""
        with self._lock:
            try:
                value = self._data[key]
            except KeyError:
                self._misses += 1
                return None
            self._data.move_to_end(key)
            self._hits += 1
            return value

    def set(self, key: K, value: V) -> None:
        """Insert or refresh ``key``, evicting the oldest entry past capacity."""
        with self._lock:
            if key in self._data:
                self._data.move_to_end(key)
            self._data[key] = value
            if len(self._data) > self.capacity:
                self._data.popitem(last=False)

    def clear(self) -> None:
        """Drop all entries and reset statistics."""
        with self._lock:
            self._data.clear()
            self._hits = 0
            self._misses = 0

    def info(self) -> CacheInfo:
        with self._lock:
            return CacheInfo(self._hits, self._misses, len(self._data), self.capacity)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data
