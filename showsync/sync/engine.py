"""Incremental sync of tracked collections into the store."""

import time
import uuid

import structlog

from showsync.catalog.fetcher import CatalogFetcher
from showsync.catalog.models import Episode
from showsync.clock import Clock, Sleeper, real_sleep, utc_now
from showsync.errors import ShowsyncError
from showsync.store.hash import compute_info_hash
from showsync.store.models import EpisodeRecord, ShowRecord
from showsync.store.protocols import PersistentStore
from showsync.sync.batch import BatchWriter
from showsync.sync.collections import (
    collate_collections,
    list_known_item_ids,
    load_subscriptions,
)
from showsync.sync.models import (
    CollectionFailure,
    SyncConfig,
    SyncSummary,
    TrackedCollection,
)


logger = structlog.get_logger()


def select_new_items(fetched: list[Episode], known: set[str]) -> list[Episode]:
    """Return fetched items whose ids are not yet stored.

    Items repeated within the fetched window are kept once, at their first
    position.
    """
    seen = set(known)
    new_items: list[Episode] = []
    for episode in fetched:
        if episode.id in seen:
            continue
        seen.add(episode.id)
        new_items.append(episode)
    return new_items


class SyncEngine:
    """Reconciles each tracked collection against its recent upstream window.

    For every show with at least one subscription:
    - load the item ids already stored for it
    - fetch a bounded window of the most recent upstream items
    - batch-write the items not stored yet
    - overwrite the collection metadata

    A failure in one collection is recorded in the summary and the pass
    moves on to the next collection.
    """

    def __init__(  # noqa: PLR0913
        self,
        store: PersistentStore,
        fetcher: CatalogFetcher,
        config: SyncConfig | None = None,
        clock: Clock = utc_now,
        sleep: Sleeper = real_sleep,
        run_id: str | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            store: Persistent store.
            fetcher: Upstream catalog fetcher.
            config: Sync tunables.
            clock: Time source.
            sleep: Blocking sleep used for batch retries.
            run_id: Optional run ID for logging context.
        """
        self._store = store
        self._fetcher = fetcher
        self._config = config or SyncConfig()
        self._clock = clock
        self._writer = BatchWriter(store, self._config, sleep)
        self._run_id = run_id or str(uuid.uuid4())
        self._log = logger.bind(component="sync", run_id=self._run_id)

    def run(self) -> SyncSummary:
        """Run one sync pass over every tracked collection.

        Returns:
            Summary with per-collection failures.
        """
        start_ns = time.perf_counter_ns()
        summary = SyncSummary()

        collections = collate_collections(load_subscriptions(self._store))
        self._log.info("sync_started", collection_count=len(collections))

        for collection in collections.values():
            log = self._log.bind(show_id=collection.id)
            try:
                upserted = self._sync_collection(collection)
            except ShowsyncError as exc:
                log.warning(
                    "sync_collection_failed",
                    error_class=exc.error_class.value,
                    error=exc.message,
                )
                summary.failures.append(
                    CollectionFailure(
                        collection_id=collection.id,
                        error_class=exc.error_class.value,
                        message=exc.message,
                    )
                )
                continue

            summary.collections_processed += 1
            summary.items_upserted += upserted
            log.info("sync_collection_complete", items_upserted=upserted)

        summary.duration_ms = (time.perf_counter_ns() - start_ns) // 1_000_000
        self._log.info(
            "sync_complete",
            collections_processed=summary.collections_processed,
            collections_failed=summary.collections_failed,
            items_upserted=summary.items_upserted,
            duration_ms=summary.duration_ms,
        )
        return summary

    def _sync_collection(self, collection: TrackedCollection) -> int:
        known = list_known_item_ids(self._store, collection.id)
        fetched = self._fetcher.fetch_recent_items(
            collection.id,
            max_pages=self._config.max_pages,
            page_size=self._config.page_size,
        )
        new_items = select_new_items(fetched, known)
        now = self._clock()

        if new_items:
            self._writer.write(
                [
                    EpisodeRecord(
                        id=episode.id,
                        show_id=collection.id,
                        title=episode.title,
                        description=episode.description,
                        audio_url=episode.audio_url or "",
                        published_at=episode.published_at,
                        duration_sec=episode.duration_sec,
                        updated_at=now,
                    ).to_item()
                    for episode in new_items
                ]
            )

        latest = fetched[0] if fetched else None
        self._store.put(
            ShowRecord(
                id=collection.id,
                title=collection.title or "",
                publisher=collection.publisher or "",
                image=collection.image,
                known_item_count=len(known) + len(new_items),
                last_refreshed_at=now,
                last_item_published_at=latest.published_at if latest else None,
                info_hash=compute_info_hash(
                    collection.title, collection.publisher, collection.image
                ),
            ).to_item()
        )
        return len(new_items)
