"""
Unit tests for TTLCache.

A fake clock drives expiry so nothing sleeps.
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from src.utils.cache import TTLCache


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(ttl_seconds=60, clock=clock)


class TestTTLCache:
    def test_rejects_non_positive_ttl(self):
        with pytest.raises(ValueError):
            TTLCache(0)

    def test_get_missing_returns_default(self, cache):
        assert cache.get("missing") is None
        assert cache.get("missing", "fallback") == "fallback"

    def test_set_then_get(self, cache):
        cache.set("summary", {"win_rate": 60})
        assert cache.get("summary") == {"win_rate": 60}

    def test_entry_expires(self, cache, clock):
        cache.set("summary", 1)

        clock.advance(59)
        assert cache.get("summary") == 1

        clock.advance(1)
        assert cache.get("summary") is None
        assert len(cache) == 0

    def test_get_or_compute_only_computes_on_miss(self, cache, clock):
        calls = []

        def compute():
            calls.append(1)
            return len(calls)

        assert cache.get_or_compute("k", compute) == 1
        assert cache.get_or_compute("k", compute) == 1
        assert len(calls) == 1

        clock.advance(61)
        assert cache.get_or_compute("k", compute) == 2

    def test_cached_none_is_a_hit(self, cache):
        calls = []
        cache.get_or_compute("k", lambda: calls.append(1))
        cache.get_or_compute("k", lambda: calls.append(1))
        assert len(calls) == 1

    def test_invalidate_single_key(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)

        cache.invalidate("a")

        assert cache.get("a") is None
        assert cache.get("b") == 2

    def test_invalidate_all(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)

        cache.invalidate()

        assert len(cache) == 0

    def test_hit_rate(self, cache):
        assert cache.hit_rate == 0.0

        cache.set("a", 1)
        cache.get("a")
        cache.get("a")
        cache.get("b")

        assert cache.hits == 2
        assert cache.misses == 1
        assert cache.hit_rate == pytest.approx(2 / 3)
