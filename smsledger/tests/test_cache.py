"""Tests for the fingerprint LRU cache."""

import threading

import pytest

from smsledger.config import settings
from smsledger.services.cache import FingerprintCache


class TestCapacity:
    """Test LRU eviction."""

    def test_default_capacity(self):
        """Capacity comes from settings by default."""
        assert FingerprintCache().capacity == settings.cache_capacity

    def test_capacity_plus_one_evicts_one(self):
        """Inserting capacity+1 fingerprints evicts exactly the oldest."""
        cache = FingerprintCache(capacity=3)
        for i in range(4):
            cache.add(f"fp-{i}", i)

        assert len(cache) == 3
        assert cache.contains("fp-0") is False
        assert all(cache.contains(f"fp-{i}") for i in range(1, 4))

    def test_contains_touches_entry(self):
        """A lookup makes the entry most recently used."""
        cache = FingerprintCache(capacity=2)
        cache.add("a", 1)
        cache.add("b", 2)
        assert cache.contains("a") is True

        cache.add("c", 3)

        assert cache.contains("a") is True
        assert cache.contains("b") is False

    def test_re_adding_refreshes(self):
        """Adding an existing fingerprint does not grow the cache."""
        cache = FingerprintCache(capacity=2)
        cache.add("a", 1)
        cache.add("a", 5)
        assert len(cache) == 1

    def test_invalid_capacity(self):
        """Capacity must be positive."""
        with pytest.raises(ValueError):
            FingerprintCache(capacity=0)


class TestDiscard:
    """Test forgetting a single fingerprint."""

    def test_discard(self):
        """Discarding removes only that entry and reports whether it was there."""
        cache = FingerprintCache(capacity=10)
        cache.add("a", 1)
        cache.add("b", 2)

        assert cache.discard("a") is True
        assert cache.discard("a") is False
        assert cache.contains("a") is False
        assert cache.contains("b") is True
        assert len(cache) == 1


class TestCleanup:
    """Test age-based eviction."""

    def test_removes_entries_older_than_cutoff(self):
        """Entries before the cutoff are removed and counted."""
        cache = FingerprintCache(capacity=10)
        cache.add("old", 100)
        cache.add("edge", 200)
        cache.add("new", 300)

        assert cache.cleanup(older_than=200) == 1
        assert cache.contains("old") is False
        assert cache.contains("edge") is True
        assert len(cache) == 2

    def test_refresh_updates_age(self):
        """Re-adding a fingerprint records the newer timestamp."""
        cache = FingerprintCache(capacity=10)
        cache.add("a", 100)
        cache.add("a", 500)
        assert cache.cleanup(older_than=200) == 0

    def test_clear(self):
        """Clear empties the cache."""
        cache = FingerprintCache(capacity=10)
        cache.add("a", 1)
        cache.clear()
        assert len(cache) == 0


class TestConcurrency:
    """Test thread safety."""

    def test_parallel_adds_respect_capacity(self):
        """Concurrent adds never overflow the capacity."""
        cache = FingerprintCache(capacity=50)

        def worker(offset: int) -> None:
            for i in range(200):
                cache.add(f"fp-{offset}-{i}", i)
                cache.contains(f"fp-{offset}-{i // 2}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(cache) == 50
