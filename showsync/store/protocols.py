"""Persistent store contract consumed by the cache, limiter, and sync engine."""

from collections.abc import Callable, Mapping
from typing import Any, Protocol

from showsync.store.keys import StoreKey
from showsync.store.models import Page, StoreItem


MAX_BATCH_WRITE_ITEMS = 25


class PersistentStore(Protocol):
    """Durable key/value and query substrate.

    Implementations must make ``atomic_increment`` a single atomic operation
    and must fail ``conditional_update`` distinctly when the key is absent.
    """

    def get(self, key: StoreKey) -> StoreItem | None:
        """Return the item stored under ``key``, or None."""
        ...

    def put(self, item: StoreItem) -> None:
        """Unconditionally insert or replace an item."""
        ...

    def conditional_update(
        self, key: StoreKey, changes: Mapping[str, Any]
    ) -> StoreItem:
        """Merge ``changes`` into an existing item.

        Raises:
            ConditionalCheckFailed: If the key does not exist.
        """
        ...

    def query_by_prefix(
        self,
        pk: str,
        sk_prefix: str,
        limit: int = 100,
        start_key: StoreKey | None = None,
    ) -> Page:
        """Read items of one partition whose sort key starts with a prefix."""
        ...

    def scan_with_filter(
        self,
        predicate: Callable[[StoreItem], bool],
        limit: int = 100,
        start_key: StoreKey | None = None,
    ) -> Page:
        """Scan the table, keeping items matching ``predicate``."""
        ...

    def batch_write(self, items: list[StoreItem]) -> list[StoreItem]:
        """Write up to 25 items; return the ones that were not processed."""
        ...

    def atomic_increment(
        self,
        key: StoreKey,
        field: str,
        amount: int = 1,
        defaults: Mapping[str, Any] | None = None,
    ) -> int:
        """Atomically add ``amount`` to a numeric field and return the new value."""
        ...
