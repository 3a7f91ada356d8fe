"""Unit tests for the read-through cache."""

from collections.abc import Generator
from pathlib import Path

import pytest

from showsync.cache.keys import make_cache_key
from showsync.cache.metrics import CacheMetrics
from showsync.cache.read_through import ReadThroughCache
from showsync.store.keys import cache_key
from showsync.store.store import SqliteStore
from tests.helpers.store import open_store
from tests.helpers.time import FakeClock


@pytest.fixture(autouse=True)
def reset_metrics() -> Generator[None]:
    """Reset cache metrics around each test."""
    CacheMetrics.reset()
    yield
    CacheMetrics.reset()


@pytest.fixture
def store(tmp_path: Path) -> Generator[SqliteStore]:
    """Create a connected store."""
    store = open_store(tmp_path)
    yield store
    store.close()


class CountingFetcher:
    """Fetcher that returns numbered values."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> dict[str, int]:
        self.calls += 1
        return {"n": self.calls}


class TestCacheKeys:
    """Tests for cache key construction."""

    def test_key_order_irrelevant(self) -> None:
        """Argument order does not change the key."""
        assert make_cache_key("search", {"term": "a", "limit": 20}) == make_cache_key(
            "search", {"limit": 20, "term": "a"}
        )

    def test_none_values_omitted(self) -> None:
        """None arguments are equivalent to absent ones."""
        assert make_cache_key("getItems", {"showId": "s1", "cursor": None}) == (
            make_cache_key("getItems", {"showId": "s1"})
        )

    def test_operation_prefix(self) -> None:
        """Keys start with the operation and differ across operations."""
        key = make_cache_key("getItem", {"episodeId": "e1"})

        assert key.startswith("getItem:")
        assert key != make_cache_key("getCollection", {"episodeId": "e1"})


class TestGetOrFetch:
    """Tests for hit, miss, and expiry behavior."""

    def test_second_call_within_ttl_is_hit(self, store: SqliteStore) -> None:
        """Within the TTL the fetcher runs once."""
        clock = FakeClock()
        cache = ReadThroughCache(store, clock=clock)
        fetcher = CountingFetcher()
        key = make_cache_key("search", {"term": "news"})

        first = cache.get_or_fetch(key, 300, fetcher)
        clock.advance(299)
        second = cache.get_or_fetch(key, 300, fetcher)

        assert first == second == {"n": 1}
        assert fetcher.calls == 1
        metrics = CacheMetrics.get_instance()
        assert metrics.cache_hits_total == {"search": 1}
        assert metrics.cache_misses_total == {"search": 1}

    def test_expired_entry_is_refetched(self, store: SqliteStore) -> None:
        """At expiry the next call fetches and overwrites."""
        clock = FakeClock()
        cache = ReadThroughCache(store, clock=clock)
        fetcher = CountingFetcher()
        key = make_cache_key("search", {"term": "news"})

        cache.get_or_fetch(key, 300, fetcher)
        clock.advance(300)
        value = cache.get_or_fetch(key, 300, fetcher)

        assert value == {"n": 2}
        assert fetcher.calls == 2
        entry = cache.lookup(key)
        assert entry is not None
        assert entry.value == {"n": 2}

    def test_entry_written_with_expiry(self, store: SqliteStore) -> None:
        """The stored item carries expires_at = now + ttl."""
        clock = FakeClock()
        cache = ReadThroughCache(store, clock=clock)
        key = make_cache_key("getCollection", {"showId": "s1"})

        cache.get_or_fetch(key, 3600, lambda: {"id": "s1"})

        item = store.get(cache_key(key))
        assert item is not None
        assert item["expires_at"] == int(clock.now.timestamp()) + 3600
        assert item["value"] == {"id": "s1"}

    def test_fetch_errors_are_not_cached(self, store: SqliteStore) -> None:
        """A failing fetcher leaves no entry behind."""
        cache = ReadThroughCache(store, clock=FakeClock())
        key = make_cache_key("getItem", {"episodeId": "e1"})

        def fail() -> dict[str, str]:
            raise RuntimeError("upstream down")

        with pytest.raises(RuntimeError):
            cache.get_or_fetch(key, 3600, fail)

        assert cache.lookup(key) is None


class TestBypass:
    """Tests for personalized bypass."""

    def test_bypass_never_touches_store(self, store: SqliteStore) -> None:
        """Bypassed calls are neither read from nor written to the store."""
        cache = ReadThroughCache(store, clock=FakeClock())
        fetcher = CountingFetcher()

        cache.bypass("search", fetcher)
        cache.bypass("search", fetcher)

        assert fetcher.calls == 2
        page = store.scan_with_filter(lambda item: item.get("data_type") == "cache")
        assert page.items == []
        assert CacheMetrics.get_instance().cache_bypass_total == {"search": 2}
