"""Read-through cache over the persistent store."""

from collections.abc import Callable
from datetime import timedelta
from typing import Any

import structlog

from showsync.cache.metrics import CacheMetrics
from showsync.clock import Clock, utc_now
from showsync.store.keys import cache_key
from showsync.store.models import CacheEntry
from showsync.store.protocols import PersistentStore


logger = structlog.get_logger()


class ReadThroughCache:
    """Serves fresh cache entries and fills misses from a fetcher.

    Entries are never evicted eagerly; an entry whose ``expires_at`` has
    passed is ignored and overwritten by the next miss. Concurrent misses
    for the same key each call the fetcher (no request coalescing).
    """

    def __init__(self, store: PersistentStore, clock: Clock = utc_now) -> None:
        """Initialize the cache.

        Args:
            store: Persistent store holding cache entries.
            clock: Time source.
        """
        self._store = store
        self._clock = clock
        self._metrics = CacheMetrics.get_instance()
        self._log = logger.bind(component="cache")

    def lookup(self, key: str) -> CacheEntry | None:
        """Return the fresh entry for ``key``, or None if absent or stale."""
        item = self._store.get(cache_key(key))
        if item is None:
            return None
        entry = CacheEntry.from_item(key, item)
        if entry is None or not entry.is_fresh(self._clock()):
            return None
        return entry

    def get_or_fetch(
        self,
        key: str,
        ttl_seconds: int,
        fetcher: Callable[[], Any],
    ) -> Any:
        """Return the cached value for ``key``, fetching it on a miss.

        Args:
            key: Cache key from ``make_cache_key``.
            ttl_seconds: Lifetime of a newly written entry.
            fetcher: Produces the JSON-serializable value on a miss.

        Returns:
            The cached or freshly fetched value.
        """
        operation = key.split(":", 1)[0]

        entry = self.lookup(key)
        if entry is not None:
            self._metrics.record_hit(operation)
            self._log.debug("cache_hit", key=key)
            return entry.value

        self._metrics.record_miss(operation)
        value = fetcher()

        now = self._clock()
        self._store.put(
            CacheEntry(
                key=key,
                value=value,
                expires_at=now + timedelta(seconds=ttl_seconds),
                updated_at=now,
            ).to_item()
        )
        self._log.debug("cache_miss_filled", key=key, ttl_seconds=ttl_seconds)
        return value

    def bypass(self, operation: str, fetcher: Callable[[], Any]) -> Any:
        """Call ``fetcher`` without reading or writing the cache.

        Used for personalized results, which must never be shared.
        """
        self._metrics.record_bypass(operation)
        self._log.debug("cache_bypass", operation=operation)
        return fetcher()
