"""Store reads that drive a sync pass."""

from showsync.store.keys import (
    DATA_TYPE_SUBSCRIPTION,
    EPISODE_PREFIX,
    SUBSCRIPTION_PREFIX,
    StoreKey,
    show_pk,
)
from showsync.store.models import StoreItem, SubscriptionRecord
from showsync.store.protocols import PersistentStore
from showsync.sync.models import TrackedCollection


SCAN_PAGE_SIZE = 100


def _is_subscription(item: StoreItem) -> bool:
    return item.get("data_type") == DATA_TYPE_SUBSCRIPTION and str(
        item.get("sk", "")
    ).startswith(SUBSCRIPTION_PREFIX)


def load_subscriptions(
    store: PersistentStore, page_size: int = SCAN_PAGE_SIZE
) -> list[SubscriptionRecord]:
    """Scan every subscription row, following pagination.

    Rows without a usable show id are skipped.
    """
    subscriptions: list[SubscriptionRecord] = []
    start_key: StoreKey | None = None

    while True:
        page = store.scan_with_filter(
            _is_subscription, limit=page_size, start_key=start_key
        )
        for item in page.items:
            record = SubscriptionRecord.from_item(item)
            if record is not None:
                subscriptions.append(record)
        if page.last_key is None:
            return subscriptions
        start_key = page.last_key


def collate_collections(
    subscriptions: list[SubscriptionRecord],
) -> dict[str, TrackedCollection]:
    """Collapse subscriptions into distinct collections, first one wins.

    Insertion order follows the order subscriptions were read in.
    """
    collections: dict[str, TrackedCollection] = {}
    for subscription in subscriptions:
        if subscription.show_id in collections:
            continue
        collections[subscription.show_id] = TrackedCollection(
            id=subscription.show_id,
            title=subscription.title,
            publisher=subscription.publisher,
            image=subscription.image,
        )
    return collections


def group_by_show(
    subscriptions: list[SubscriptionRecord],
) -> dict[str, list[SubscriptionRecord]]:
    """Group subscriptions by show id, preserving read order."""
    grouped: dict[str, list[SubscriptionRecord]] = {}
    for subscription in subscriptions:
        grouped.setdefault(subscription.show_id, []).append(subscription)
    return grouped


def list_known_item_ids(
    store: PersistentStore, collection_id: str, page_size: int = SCAN_PAGE_SIZE
) -> set[str]:
    """Return the ids of every item already stored for a collection."""
    known: set[str] = set()
    start_key: StoreKey | None = None

    while True:
        page = store.query_by_prefix(
            show_pk(collection_id),
            EPISODE_PREFIX,
            limit=page_size,
            start_key=start_key,
        )
        for item in page.items:
            episode_id = item.get("episode_id")
            if isinstance(episode_id, str):
                known.add(episode_id)
        if page.last_key is None:
            return known
        start_key = page.last_key
