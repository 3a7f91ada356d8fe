"""Configuration and result types for sync passes."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

from showsync.catalog.constants import MAX_PAGE_SIZE, SYNC_MAX_PAGES, SYNC_PAGE_SIZE
from showsync.store.protocols import MAX_BATCH_WRITE_ITEMS


class SyncConfig(BaseModel):
    """Tunables of a sync pass.

    The batch backoff before retrying unprocessed items is
    ``min(backoff_base_ms * 2 ** attempt, backoff_cap_ms)``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_pages: Annotated[int, Field(ge=1, le=20)] = SYNC_MAX_PAGES
    page_size: Annotated[int, Field(ge=1, le=MAX_PAGE_SIZE)] = SYNC_PAGE_SIZE
    batch_size: Annotated[int, Field(ge=1, le=MAX_BATCH_WRITE_ITEMS)] = (
        MAX_BATCH_WRITE_ITEMS
    )
    max_batch_attempts: Annotated[int, Field(ge=1, le=50)] = 8
    backoff_base_ms: Annotated[int, Field(ge=0)] = 50
    backoff_cap_ms: Annotated[int, Field(ge=0)] = 2000


@dataclass(frozen=True)
class TrackedCollection:
    """A show referenced by at least one subscription.

    Display fields come from the first subscription seen for the show.
    """

    id: str
    title: str | None = None
    publisher: str | None = None
    image: str | None = None


@dataclass(frozen=True)
class CollectionFailure:
    """A collection whose sync failed during a pass."""

    collection_id: str
    error_class: str
    message: str


@dataclass
class SyncSummary:
    """Result of a sync pass."""

    collections_processed: int = 0
    items_upserted: int = 0
    duration_ms: int = 0
    failures: list[CollectionFailure] = field(default_factory=list)

    @property
    def collections_failed(self) -> int:
        """Number of collections whose sync failed."""
        return len(self.failures)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "collections_processed": self.collections_processed,
            "collections_failed": self.collections_failed,
            "items_upserted": self.items_upserted,
            "duration_ms": self.duration_ms,
            "failures": [
                {
                    "collection_id": failure.collection_id,
                    "error_class": failure.error_class,
                    "message": failure.message,
                }
                for failure in self.failures
            ],
        }


@dataclass
class SubscriptionRefreshSummary:
    """Result of refreshing subscription display fields."""

    subscriptions_processed: int = 0
    unique_shows_processed: int = 0
    updates_applied: int = 0
    skipped_updates: int = 0
    synced_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "subscriptions_processed": self.subscriptions_processed,
            "unique_shows_processed": self.unique_shows_processed,
            "updates_applied": self.updates_applied,
            "skipped_updates": self.skipped_updates,
            "synced_at": self.synced_at.isoformat() if self.synced_at else None,
        }
