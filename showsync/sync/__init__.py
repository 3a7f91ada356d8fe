"""Sync path: mirrors subscribed shows and their recent episodes.

This module provides the scheduled jobs:
- SyncEngine: incremental upsert of new episodes plus metadata refresh
- SubscriptionRefresher: copies current show details onto subscriptions
- BatchWriter: chunked batch writes with capped retries
"""

from showsync.sync.batch import BatchWriter
from showsync.sync.engine import SyncEngine, select_new_items
from showsync.sync.models import (
    CollectionFailure,
    SubscriptionRefreshSummary,
    SyncConfig,
    SyncSummary,
    TrackedCollection,
)
from showsync.sync.subscriptions import SubscriptionRefresher


__all__ = [
    # Jobs
    "SubscriptionRefresher",
    "SyncEngine",
    # Writer
    "BatchWriter",
    "select_new_items",
    # Models
    "CollectionFailure",
    "SubscriptionRefreshSummary",
    "SyncConfig",
    "SyncSummary",
    "TrackedCollection",
]
