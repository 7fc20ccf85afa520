"""Tests for the registry response cache."""

from storage.response_cache import ResponseCache


def test_set_and_get():
    cache = ResponseCache()
    cache.set("https://r/a", (200, {"name": "a"}))
    assert cache.get("https://r/a") == (200, {"name": "a"})
    assert cache.get("https://r/b") is None
    assert cache.stats()["hits"] == 1
    assert cache.stats()["misses"] == 1


def test_expired_entry_dropped():
    cache = ResponseCache()
    cache.set("https://r/a", (200, {}), ttl=-1)
    assert cache.get("https://r/a") is None
    assert len(cache) == 0


def test_oldest_entries_evicted():
    cache = ResponseCache(max_entries=10)
    for i in range(11):
        cache.set(f"https://r/{i}", i)
    assert len(cache) == 10
    assert cache.get("https://r/0") is None
    assert cache.get("https://r/10") == 10


def test_clear():
    cache = ResponseCache()
    cache.set("k", 1)
    cache.clear()
    assert len(cache) == 0
