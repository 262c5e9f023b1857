"""Tests for the ETag response cache."""

from prcclient.services.response_cache import CacheEntry, ResponseCache


class TestResponseCache:
    """Tests for ResponseCache."""

    def test_miss_returns_none(self):
        assert ResponseCache().get("GET", "https://x/v1/server") is None

    def test_store_and_get(self):
        cache = ResponseCache()
        entry = cache.store("GET", "https://x/v1/server", '"abc"', {"Name": "PRC"})
        assert entry == CacheEntry(etag='"abc"', payload={"Name": "PRC"})
        assert cache.get("GET", "https://x/v1/server") is entry

    def test_key_includes_method(self):
        cache = ResponseCache()
        cache.store("get", "https://x/a", "e1", 1)
        assert cache.get("GET", "https://x/a").payload == 1
        assert cache.get("HEAD", "https://x/a") is None
        assert ResponseCache.key("get", "https://x/a") in cache

    def test_last_writer_wins(self):
        cache = ResponseCache()
        cache.store("GET", "https://x/a", "e1", 1)
        cache.store("GET", "https://x/a", "e2", 2)
        assert cache.get("GET", "https://x/a") == CacheEntry("e2", 2)
        assert len(cache) == 1

    def test_entries_are_never_evicted(self):
        cache = ResponseCache()
        for i in range(5000):
            cache.store("GET", f"https://x/a?page={i}", f"e{i}", i)
        assert len(cache) == 5000
        assert cache.get("GET", "https://x/a?page=0").payload == 0

    def test_clear(self):
        cache = ResponseCache()
        cache.store("GET", "https://x/a", "e1", 1)
        cache.clear()
        assert len(cache) == 0
