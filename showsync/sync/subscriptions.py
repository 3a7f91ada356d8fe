"""Refresh of subscription display fields from the upstream catalog."""

import structlog

from showsync.catalog.fetcher import CatalogFetcher
from showsync.catalog.models import Show
from showsync.clock import Clock, utc_now
from showsync.errors import ConditionalCheckFailed
from showsync.store.models import SubscriptionRecord
from showsync.store.protocols import PersistentStore
from showsync.sync.collections import group_by_show, load_subscriptions
from showsync.sync.models import SubscriptionRefreshSummary


logger = structlog.get_logger()


def subscription_changes(show: Show, synced_at: str) -> dict[str, object]:
    """Build the display-field update applied to a show's subscriptions.

    A blank title falls back to the show id.
    """
    title = show.title if show.title.strip() else show.id
    return {
        "title": title,
        "publisher": show.publisher if show.publisher.strip() else "",
        "image": show.image or "",
        "total_episodes": max(0, int(show.total_episodes)),
        "subscription_synced_at": synced_at,
    }


class SubscriptionRefresher:
    """Copies current show details onto every subscription row.

    Updates are existence-conditional: a subscription deleted between the
    scan and its update is counted as skipped and never recreated.
    """

    def __init__(
        self,
        store: PersistentStore,
        fetcher: CatalogFetcher,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._clock = clock
        self._log = logger.bind(component="sync", subcomponent="subscriptions")

    def run(self) -> SubscriptionRefreshSummary:
        """Refresh all subscriptions, fetching each show once.

        Returns:
            Counts of processed rows, shows, applied and skipped updates.
        """
        subscriptions = load_subscriptions(self._store)
        if not subscriptions:
            self._log.info("subscription_refresh_empty")
            return SubscriptionRefreshSummary()

        grouped = group_by_show(subscriptions)
        synced_at = self._clock()
        summary = SubscriptionRefreshSummary(
            subscriptions_processed=len(subscriptions),
            unique_shows_processed=len(grouped),
            synced_at=synced_at,
        )

        for show_id, records in grouped.items():
            show = self._fetcher.get_collection(show_id)
            changes = subscription_changes(show, synced_at.isoformat())
            applied, skipped = self._apply(records, changes)
            summary.updates_applied += applied
            summary.skipped_updates += skipped

        self._log.info(
            "subscription_refresh_complete",
            subscriptions_processed=summary.subscriptions_processed,
            unique_shows_processed=summary.unique_shows_processed,
            updates_applied=summary.updates_applied,
            skipped_updates=summary.skipped_updates,
        )
        return summary

    def _apply(
        self, records: list[SubscriptionRecord], changes: dict[str, object]
    ) -> tuple[int, int]:
        applied = 0
        skipped = 0
        for record in records:
            try:
                self._store.conditional_update(record.key, changes)
            except ConditionalCheckFailed:
                self._log.debug(
                    "subscription_update_skipped",
                    user_id=record.user_id,
                    show_id=record.show_id,
                )
                skipped += 1
                continue
            applied += 1
        return applied, skipped
