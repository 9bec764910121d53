"""Tests for rate limit counter storage."""

import pytest

from edge_guard.ratelimit.models import RateLimitEntry
from edge_guard.ratelimit.store import InMemoryRateLimitStore, RateLimitStore


class TestInMemoryRateLimitStore:
    """Tests for InMemoryRateLimitStore."""

    def test_get_missing(self):
        assert InMemoryRateLimitStore().get("nope") is None

    def test_set_and_get(self):
        """Stored entries are returned by key."""
        store = InMemoryRateLimitStore()
        entry = RateLimitEntry(count=3, window_start=1000)
        store.set("api:1.2.3.4", entry)
        assert store.get("api:1.2.3.4") is entry
        assert len(store) == 1

    def test_delete(self):
        """Delete reports whether the key existed."""
        store = InMemoryRateLimitStore()
        store.set("k", RateLimitEntry(count=1, window_start=0))
        assert store.delete("k") is True
        assert store.delete("k") is False

    def test_keys_is_a_snapshot(self):
        """Keys can be iterated while the store changes."""
        store = InMemoryRateLimitStore()
        for name in ("a", "b", "c"):
            store.set(name, RateLimitEntry(count=1, window_start=0))

        for key in store.keys():
            store.delete(key)

        assert len(store) == 0

    def test_sweep_uses_strict_age(self):
        """Entries exactly at the age limit are kept."""
        store = InMemoryRateLimitStore()
        store.set("old", RateLimitEntry(count=1, window_start=0))
        store.set("edge", RateLimitEntry(count=1, window_start=500))
        store.set("new", RateLimitEntry(count=1, window_start=900))

        assert store.sweep(now_ms=1500, max_age_ms=1000) == 1
        assert sorted(store.keys()) == ["edge", "new"]

    def test_clear(self):
        store = InMemoryRateLimitStore()
        store.set("k", RateLimitEntry(count=1, window_start=0))
        store.clear()
        assert len(store) == 0


class TestRateLimitStoreInterface:
    """Tests for the abstract store."""

    def test_cannot_instantiate(self):
        with pytest.raises(TypeError):
            RateLimitStore()

    def test_default_len_counts_keys(self):
        """Subclasses get __len__ from keys()."""

        class ListStore(RateLimitStore):
            def __init__(self):
                self.data = {}

            def get(self, key):
                return self.data.get(key)

            def set(self, key, entry):
                self.data[key] = entry

            def delete(self, key):
                return self.data.pop(key, None) is not None

            def keys(self):
                return iter(list(self.data))

            def sweep(self, now_ms, max_age_ms):
                return 0

        store = ListStore()
        store.set("a", RateLimitEntry(count=1, window_start=0))
        store.set("b", RateLimitEntry(count=1, window_start=0))
        assert len(store) == 2
