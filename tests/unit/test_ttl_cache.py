"""
Tests for the bounded TTL cache.
"""
import pytest

from diygenie.utils.ttl_cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestTTLCache:
    def test_get_after_set(self):
        cache = TTLCache(max_entries=4, ttl_seconds=60)
        cache.set("a", [1])
        assert cache.get("a") == [1]
        assert cache.stats()["hits"] == 1

    def test_entries_expire(self):
        clock = FakeClock()
        cache = TTLCache(max_entries=4, ttl_seconds=60, clock=clock)
        cache.set("a", "value")
        clock.now += 59.9
        assert cache.get("a") == "value"
        clock.now += 0.2
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_reading_does_not_extend_max_age(self):
        clock = FakeClock()
        cache = TTLCache(max_entries=4, ttl_seconds=10, clock=clock)
        cache.set("a", 1)
        clock.now += 8
        assert cache.get("a") == 1
        clock.now += 3
        assert cache.get("a") is None

    def test_lru_eviction_when_full(self):
        cache = TTLCache(max_entries=2, ttl_seconds=60)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)
        assert cache.get("b") is None
        assert cache.get("a") == 1
        assert cache.get("c") == 3
        assert len(cache) == 2

    def test_full_cache_drops_expired_before_live_entries(self):
        clock = FakeClock()
        cache = TTLCache(max_entries=2, ttl_seconds=5, clock=clock)
        cache.set("a", 1)
        clock.now += 3
        cache.set("b", 2)
        cache.get("a")
        clock.now += 3
        cache.set("c", 3)
        # "a" was most recently used but expired; "b" is older but still live
        assert cache.get("b") == 2
        assert cache.get("c") == 3
        assert len(cache) == 2

    @pytest.mark.parametrize("kwargs", [{"max_entries": 0}, {"ttl_seconds": 0}])
    def test_rejects_invalid_bounds(self, kwargs):
        with pytest.raises(ValueError):
            TTLCache(**kwargs)
