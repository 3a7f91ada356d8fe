"""Data models for records kept in the persistent store."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

from showsync.store.keys import (
    DATA_TYPE_CACHE,
    DATA_TYPE_EPISODE,
    DATA_TYPE_RATE_LIMIT,
    DATA_TYPE_SHOW,
    DATA_TYPE_SUBSCRIPTION,
    StoreKey,
    cache_key,
    episode_key,
    rate_limit_key,
    show_meta_key,
    subscription_key,
)


StoreItem = dict[str, Any]


def to_epoch_seconds(value: datetime) -> int:
    """Convert a datetime to integer epoch seconds."""
    return int(value.timestamp())


def from_epoch_seconds(value: int | float) -> datetime:
    """Convert epoch seconds to an aware UTC datetime."""
    return datetime.fromtimestamp(value, tz=UTC)


def _optional_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(str(value))


@dataclass
class Page:
    """One page of a paginated store read.

    Attributes:
        items: Items on this page.
        last_key: Key to resume from, or None when the read is exhausted.
    """

    items: list[StoreItem] = field(default_factory=list)
    last_key: StoreKey | None = None


class CacheEntry(BaseModel):
    """Read-through cache entry.

    Never served once ``now >= expires_at``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    key: Annotated[str, Field(min_length=1, description="Operation + args hash")]
    value: Any = Field(description="Cached JSON value")
    expires_at: datetime = Field(description="When the entry stops being served")
    updated_at: datetime = Field(description="When the entry was written")

    def is_fresh(self, now: datetime) -> bool:
        """Check whether the entry may still be served.

        Args:
            now: Current time.

        Returns:
            True if ``now`` is before ``expires_at``.
        """
        return now < self.expires_at

    def to_item(self) -> StoreItem:
        """Convert to a store item."""
        key = cache_key(self.key)
        return {
            "pk": key.pk,
            "sk": key.sk,
            "data_type": DATA_TYPE_CACHE,
            "value": self.value,
            "expires_at": to_epoch_seconds(self.expires_at),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_item(cls, key: str, item: StoreItem) -> "CacheEntry | None":
        """Build an entry from a store item.

        Returns None for items without an expiry or value.
        """
        expires_at = item.get("expires_at")
        if expires_at is None or item.get("value") is None:
            return None
        return cls(
            key=key,
            value=item["value"],
            expires_at=from_epoch_seconds(expires_at),
            updated_at=_optional_datetime(item.get("updated_at"))
            or from_epoch_seconds(0),
        )


class RateLimitCounter(BaseModel):
    """Fixed-window request counter for one identity and operation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    identity_key: str
    operation: str
    window_bucket: Annotated[int, Field(ge=0)]
    count: Annotated[int, Field(ge=0)]
    expires_at: datetime

    @property
    def key(self) -> StoreKey:
        """Store key of this counter."""
        return rate_limit_key(self.identity_key, self.operation, self.window_bucket)

    def to_item(self) -> StoreItem:
        """Convert to a store item."""
        key = self.key
        return {
            "pk": key.pk,
            "sk": key.sk,
            "data_type": DATA_TYPE_RATE_LIMIT,
            "identity_key": self.identity_key,
            "operation": self.operation,
            "window_bucket": self.window_bucket,
            "count": self.count,
            "expires_at": to_epoch_seconds(self.expires_at),
        }


class ShowRecord(BaseModel):
    """Tracked collection metadata, refreshed on every sync pass."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: Annotated[str, Field(min_length=1)]
    title: str = ""
    publisher: str = ""
    image: str | None = None
    known_item_count: Annotated[int, Field(ge=0)] = 0
    last_refreshed_at: datetime
    last_item_published_at: str | None = None
    info_hash: str

    @property
    def key(self) -> StoreKey:
        """Store key of this record."""
        return show_meta_key(self.id)

    def to_item(self) -> StoreItem:
        """Convert to a store item."""
        key = self.key
        return {
            "pk": key.pk,
            "sk": key.sk,
            "data_type": DATA_TYPE_SHOW,
            "show_id": self.id,
            "title": self.title,
            "publisher": self.publisher,
            "image": self.image,
            "known_item_count": self.known_item_count,
            "last_refreshed_at": self.last_refreshed_at.isoformat(),
            "last_item_published_at": self.last_item_published_at,
            "info_hash": self.info_hash,
        }

    @classmethod
    def from_item(cls, item: StoreItem) -> "ShowRecord":
        """Build a record from a store item."""
        return cls(
            id=str(item["show_id"]),
            title=item.get("title") or "",
            publisher=item.get("publisher") or "",
            image=item.get("image"),
            known_item_count=int(item.get("known_item_count") or 0),
            last_refreshed_at=datetime.fromisoformat(item["last_refreshed_at"]),
            last_item_published_at=item.get("last_item_published_at"),
            info_hash=str(item.get("info_hash") or ""),
        )


class EpisodeRecord(BaseModel):
    """Catalog item stored under its collection.

    Uniquely identified by ``(show_id, id)``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: Annotated[str, Field(min_length=1)]
    show_id: Annotated[str, Field(min_length=1)]
    title: str = ""
    description: str | None = None
    audio_url: str = ""
    published_at: str | None = None
    duration_sec: Annotated[int, Field(ge=0)] = 0
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def key(self) -> StoreKey:
        """Store key of this record."""
        return episode_key(self.show_id, self.id)

    def to_item(self) -> StoreItem:
        """Convert to a store item."""
        key = self.key
        return {
            "pk": key.pk,
            "sk": key.sk,
            "data_type": DATA_TYPE_EPISODE,
            "show_id": self.show_id,
            "episode_id": self.id,
            "title": self.title,
            "description": self.description,
            "audio_url": self.audio_url,
            "published_at": self.published_at,
            "duration_sec": self.duration_sec,
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_item(cls, item: StoreItem) -> "EpisodeRecord":
        """Build a record from a store item."""
        return cls(
            id=str(item["episode_id"]),
            show_id=str(item["show_id"]),
            title=item.get("title") or "",
            description=item.get("description"),
            audio_url=item.get("audio_url") or "",
            published_at=item.get("published_at"),
            duration_sec=int(item.get("duration_sec") or 0),
            updated_at=_optional_datetime(item.get("updated_at"))
            or datetime.now(UTC),
        )


class SubscriptionRecord(BaseModel):
    """A user's subscription to a show.

    Written by the subscribe flow; the sync path only reads these rows and
    refreshes their display fields with existence-conditional updates.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    user_id: Annotated[str, Field(min_length=1)]
    show_id: Annotated[str, Field(min_length=1)]
    title: str | None = None
    publisher: str | None = None
    image: str | None = None
    added_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    total_episodes: Annotated[int, Field(ge=0)] = 0
    subscription_synced_at: datetime | None = None

    @property
    def key(self) -> StoreKey:
        """Store key of this record."""
        return subscription_key(self.user_id, self.show_id)

    def to_item(self) -> StoreItem:
        """Convert to a store item."""
        key = self.key
        return {
            "pk": key.pk,
            "sk": key.sk,
            "data_type": DATA_TYPE_SUBSCRIPTION,
            "user_id": self.user_id,
            "show_id": self.show_id,
            "title": self.title,
            "publisher": self.publisher,
            "image": self.image,
            "added_at": self.added_at.isoformat(),
            "total_episodes": self.total_episodes,
            "subscription_synced_at": (
                self.subscription_synced_at.isoformat()
                if self.subscription_synced_at
                else None
            ),
        }

    @classmethod
    def from_item(cls, item: StoreItem) -> "SubscriptionRecord | None":
        """Build a record from a store item.

        Returns None for rows missing the identifiers; such rows are
        ignored rather than failing the whole read.
        """
        user_id = item.get("user_id")
        show_id = item.get("show_id")
        if not isinstance(show_id, str) or not show_id:
            return None
        if not isinstance(user_id, str) or not user_id:
            pk = str(item.get("pk", ""))
            user_id = pk.split("#", 1)[1] if "#" in pk else ""
        if not user_id:
            return None

        def _text(name: str) -> str | None:
            value = item.get(name)
            return value if isinstance(value, str) else None

        return cls(
            user_id=user_id,
            show_id=show_id,
            title=_text("title"),
            publisher=_text("publisher"),
            image=_text("image"),
            added_at=_optional_datetime(item.get("added_at")) or datetime.now(UTC),
            total_episodes=max(0, int(item.get("total_episodes") or 0)),
            subscription_synced_at=_optional_datetime(
                item.get("subscription_synced_at")
            ),
        )
