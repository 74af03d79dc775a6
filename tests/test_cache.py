"""Tests for the in-process caches."""

import threading

import pytest

from fiddleserver.cache import MemoCache, TTLCache


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestMemoCache:
    """Tests for the get-or-compute cache."""

    def test_computes_once(self):
        """Test a key is only computed on first access."""
        cache = MemoCache()
        calls = []

        def compute():
            calls.append(1)
            return "value"

        assert cache.get_or_compute("k", compute) == "value"
        assert cache.get_or_compute("k", compute) == "value"
        assert len(calls) == 1

    def test_none_is_cached(self):
        """Test an absent result is remembered too."""
        cache = MemoCache()
        calls = []

        def compute():
            calls.append(1)
            return None

        assert cache.get_or_compute("k", compute) is None
        assert cache.get_or_compute("k", compute) is None
        assert len(calls) == 1
        assert "k" in cache

    def test_exception_not_cached(self):
        """Test a failing computation leaves no entry behind."""
        cache = MemoCache()

        def fail():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            cache.get_or_compute("k", fail)

        assert "k" not in cache
        assert cache.get_or_compute("k", lambda: 42) == 42

    def test_concurrent_callers_see_same_value(self):
        """Test racing first callers all get the first stored value."""
        cache = MemoCache()
        barrier = threading.Barrier(4)
        results = []

        def compute():
            barrier.wait()
            return object()

        def worker():
            results.append(cache.get_or_compute("k", compute))

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 4
        assert all(r is results[0] for r in results)
        assert len(cache) == 1


class TestTTLCache:
    """Tests for the time-expiring cache."""

    def test_hit_within_window(self):
        clock = FakeClock()
        cache = TTLCache(ttl=30, clock=clock)
        cache.set("gist", "response")

        clock.now += 29.9
        assert cache.get("gist") == "response"

    def test_expires_after_window(self):
        """Test entries expire regardless of how often they are read."""
        clock = FakeClock()
        cache = TTLCache(ttl=30, clock=clock)
        cache.set("gist", "response")

        for _ in range(5):
            clock.now += 5
            assert cache.get("gist") == "response"

        clock.now += 5
        assert cache.get("gist") is None

    def test_missing_key(self):
        cache = TTLCache(ttl=30)
        assert cache.get("nope") is None

    def test_set_purges_expired(self):
        """Test writes drop expired entries."""
        clock = FakeClock()
        cache = TTLCache(ttl=30, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)

        clock.now += 31
        cache.set("c", 3)

        assert len(cache) == 1
        assert cache.get("c") == 3

    def test_clear(self):
        cache = TTLCache(ttl=30)
        cache.set("a", 1)
        cache.clear()
        assert len(cache) == 0
