"""Store wrappers and seed helpers for tests."""

from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

from showsync.store.keys import StoreKey
from showsync.store.models import StoreItem, SubscriptionRecord
from showsync.store.store import SqliteStore


def open_store(tmp_path: Path, name: str = "showsync.sqlite") -> SqliteStore:
    """Create a connected store under a pytest tmp_path."""
    store = SqliteStore(tmp_path / name, run_id="test-run")
    store.connect()
    return store


def seed_subscription(
    store: SqliteStore,
    user_id: str,
    show_id: str,
    added_at: datetime,
    **fields: Any,
) -> SubscriptionRecord:
    record = SubscriptionRecord(
        user_id=user_id, show_id=show_id, added_at=added_at, **fields
    )
    store.put(record.to_item())
    return record


class RecordingStore:
    """Wraps a real store, recording writes and faking unprocessed items.

    ``unprocessed_plan[i]`` is the number of trailing items the i-th
    ``batch_write`` call reports as unprocessed (and does not write).
    """

    def __init__(
        self, inner: SqliteStore, unprocessed_plan: list[int] | None = None
    ) -> None:
        self.inner = inner
        self.batch_calls: list[list[StoreItem]] = []
        self.puts: list[StoreItem] = []
        self.conditional_updates: list[StoreKey] = []
        self._plan = list(unprocessed_plan or [])

    @property
    def batch_sizes(self) -> list[int]:
        return [len(call) for call in self.batch_calls]

    def batch_write(self, items: list[StoreItem]) -> list[StoreItem]:
        self.batch_calls.append(list(items))
        drop = min(self._plan.pop(0), len(items)) if self._plan else 0
        split = len(items) - drop
        self.inner.batch_write(items[:split])
        return list(items[split:])

    def put(self, item: StoreItem) -> None:
        self.puts.append(item)
        self.inner.put(item)

    def conditional_update(
        self, key: StoreKey, changes: Mapping[str, Any]
    ) -> StoreItem:
        self.conditional_updates.append(key)
        return self.inner.conditional_update(key, changes)

    def __getattr__(self, name: str) -> Any:
        return getattr(self.inner, name)
