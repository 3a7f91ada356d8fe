"""Chunked batch writes with capped retries of unprocessed items."""

import structlog

from showsync.clock import Sleeper, real_sleep
from showsync.errors import StoreWriteFailure
from showsync.store.models import StoreItem
from showsync.store.protocols import PersistentStore
from showsync.sync.models import SyncConfig


logger = structlog.get_logger()


class BatchWriter:
    """Writes items in store-sized chunks.

    When a batch call reports unprocessed items, only those items are sent
    again after a capped exponential backoff. A chunk that still has
    unprocessed items after ``max_batch_attempts`` calls fails the write.
    """

    def __init__(
        self,
        store: PersistentStore,
        config: SyncConfig | None = None,
        sleep: Sleeper = real_sleep,
    ) -> None:
        """Initialize the writer.

        Args:
            store: Target store.
            config: Chunk size and retry tunables.
            sleep: Blocking sleep used between retries.
        """
        self._store = store
        self._config = config or SyncConfig()
        self._sleep = sleep
        self._log = logger.bind(component="sync", subcomponent="batch")

    def backoff_ms(self, attempt: int) -> int:
        """Delay before the retry following the ``attempt``-th batch call."""
        return min(
            self._config.backoff_base_ms * 2**attempt, self._config.backoff_cap_ms
        )

    def write(self, items: list[StoreItem]) -> int:
        """Write all items.

        Args:
            items: Items carrying ``pk`` and ``sk``.

        Returns:
            Number of items written.

        Raises:
            StoreWriteFailure: If a chunk keeps reporting unprocessed items.
        """
        size = self._config.batch_size
        for start in range(0, len(items), size):
            self._write_chunk(items[start : start + size])
        return len(items)

    def _write_chunk(self, chunk: list[StoreItem]) -> None:
        pending = chunk
        attempt = 0

        while pending:
            unprocessed = self._store.batch_write(pending)
            attempt += 1
            if not unprocessed:
                return

            if attempt >= self._config.max_batch_attempts:
                self._log.error(
                    "batch_write_exhausted",
                    unprocessed=len(unprocessed),
                    attempts=attempt,
                )
                msg = (
                    f"{len(unprocessed)} items still unprocessed after "
                    f"{attempt} batch writes"
                )
                raise StoreWriteFailure(
                    msg, unprocessed=len(unprocessed), attempts=attempt
                )

            delay_ms = self.backoff_ms(attempt)
            self._log.info(
                "batch_write_unprocessed_retry",
                unprocessed=len(unprocessed),
                attempt=attempt,
                delay_ms=delay_ms,
            )
            self._sleep(delay_ms / 1000)
            pending = unprocessed
