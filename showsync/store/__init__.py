"""Persistent record store.

This module provides the storage substrate shared by the cache, the rate
limiter, and the sync engine:
- A single (pk, sk) keyed table with JSON record bodies
- Unconditional puts, existence-conditional updates, and atomic increments
- Prefix queries and filtered scans with resumable pagination
- Batch writes of up to 25 items
"""

from showsync.store.hash import compute_info_hash, stable_hash
from showsync.store.keys import StoreKey
from showsync.store.metrics import StoreMetrics
from showsync.store.models import (
    CacheEntry,
    EpisodeRecord,
    Page,
    RateLimitCounter,
    ShowRecord,
    StoreItem,
    SubscriptionRecord,
)
from showsync.store.protocols import MAX_BATCH_WRITE_ITEMS, PersistentStore
from showsync.store.store import SqliteStore


__all__ = [
    # Hash utilities
    "compute_info_hash",
    "stable_hash",
    # Keys
    "StoreKey",
    # Metrics
    "StoreMetrics",
    # Models
    "CacheEntry",
    "EpisodeRecord",
    "Page",
    "RateLimitCounter",
    "ShowRecord",
    "StoreItem",
    "SubscriptionRecord",
    # Protocol
    "MAX_BATCH_WRITE_ITEMS",
    "PersistentStore",
    # Store
    "SqliteStore",
]
