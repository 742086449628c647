"""Unit tests for the thread-safe LRU merge cache."""

import threading

import pytest

from mergetok import CacheInfo, ConfigError, LRUCache


def test_get_and_set():
    cache = LRUCache(2)
    cache.set("a", 1)
    assert cache.get("a") == 1
    assert cache.get("missing") is None
    assert "a" in cache
    assert len(cache) == 1


def test_evicts_least_recently_used():
    cache = LRUCache(2)
    cache.set("a", 1)
    cache.set("b", 2)
    # touching "a" makes "b" the eviction candidate
    cache.get("a")
    cache.set("c", 3)
    assert "a" in cache
    assert "b" not in cache
    assert "c" in cache


def test_set_refreshes_existing_key():
    cache = LRUCache(2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("a", 10)
    cache.set("c", 3)
    assert cache.get("a") == 10
    assert "b" not in cache


def test_info_and_clear():
    cache = LRUCache(4)
    cache.set("a", 1)
    cache.get("a")
    cache.get("b")
    assert cache.info() == CacheInfo(hits=1, misses=1, size=1, capacity=4)

    cache.clear()
    assert cache.info() == CacheInfo(hits=0, misses=0, size=0, capacity=4)


@pytest.mark.parametrize("capacity", [0, -1])
def test_invalid_capacity_raises(capacity):
    with pytest.raises(ConfigError):
        LRUCache(capacity)


def test_concurrent_access_respects_capacity():
    cache = LRUCache(64)
    errors = []

    def worker(offset):
        try:
            for i in range(2000):
                key = (offset + i) % 200
                cache.set(key, key * 2)
                value = cache.get(key)
                assert value is None or value == key * 2
        except AssertionError as e:
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(n * 7,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert not errors
    assert len(cache) <= 64
