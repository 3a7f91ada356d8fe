"""Key layout for records in the persistent store.

All records live in one table keyed by (pk, sk):

- ``show#<id>`` / ``meta``          tracked collection metadata
- ``show#<id>`` / ``ep#<item id>``  catalog items of a collection
- ``user#<id>`` / ``sub#<show id>`` subscriptions
- ``cache#<key>`` / ``catalog``     read-through cache entries
- ``ratelimit#<identity>#<op>`` / ``window#<bucket>`` rate-limit counters
"""

from dataclasses import dataclass


SHOW_PREFIX = "show#"
EPISODE_PREFIX = "ep#"
USER_PREFIX = "user#"
SUBSCRIPTION_PREFIX = "sub#"
CACHE_PREFIX = "cache#"
RATE_LIMIT_PREFIX = "ratelimit#"
WINDOW_PREFIX = "window#"

SHOW_META_SK = "meta"
CACHE_SK = "catalog"

DATA_TYPE_SHOW = "show"
DATA_TYPE_EPISODE = "episode"
DATA_TYPE_SUBSCRIPTION = "subscription"
DATA_TYPE_CACHE = "cache"
DATA_TYPE_RATE_LIMIT = "ratelimit"


@dataclass(frozen=True)
class StoreKey:
    """Primary key of a store record.

    Attributes:
        pk: Partition key.
        sk: Sort key.
    """

    pk: str
    sk: str

    @classmethod
    def of(cls, item: dict[str, object]) -> "StoreKey":
        """Extract the key of a store item.

        Args:
            item: Item carrying ``pk`` and ``sk`` attributes.

        Returns:
            The item's key.
        """
        return cls(pk=str(item["pk"]), sk=str(item["sk"]))


def show_pk(show_id: str) -> str:
    """Partition key shared by a collection's metadata and items."""
    return f"{SHOW_PREFIX}{show_id}"


def show_meta_key(show_id: str) -> StoreKey:
    """Key of a tracked collection's metadata record."""
    return StoreKey(pk=show_pk(show_id), sk=SHOW_META_SK)


def episode_key(show_id: str, episode_id: str) -> StoreKey:
    """Key of a catalog item; unique per (collection, item)."""
    return StoreKey(pk=show_pk(show_id), sk=f"{EPISODE_PREFIX}{episode_id}")


def subscription_key(user_id: str, show_id: str) -> StoreKey:
    """Key of a user's subscription to a show."""
    return StoreKey(pk=f"{USER_PREFIX}{user_id}", sk=f"{SUBSCRIPTION_PREFIX}{show_id}")


def cache_key(key: str) -> StoreKey:
    """Key of a read-through cache entry."""
    return StoreKey(pk=f"{CACHE_PREFIX}{key}", sk=CACHE_SK)


def rate_limit_key(identity_key: str, operation: str, window_bucket: int) -> StoreKey:
    """Key of a fixed-window rate-limit counter."""
    return StoreKey(
        pk=f"{RATE_LIMIT_PREFIX}{identity_key}#{operation}",
        sk=f"{WINDOW_PREFIX}{window_bucket}",
    )
