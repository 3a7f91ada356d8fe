"""Unit tests for chunked batch writes."""

from collections.abc import Generator
from pathlib import Path

import pytest

from showsync.errors import StoreWriteFailure
from showsync.store.keys import episode_key
from showsync.store.models import EpisodeRecord, StoreItem
from showsync.store.store import SqliteStore
from showsync.sync.batch import BatchWriter
from showsync.sync.models import SyncConfig
from tests.helpers.store import RecordingStore, open_store
from tests.helpers.time import FIXED_NOW, FakeSleeper


@pytest.fixture
def store(tmp_path: Path) -> Generator[SqliteStore]:
    """Create a connected store."""
    store = open_store(tmp_path)
    yield store
    store.close()


def make_items(count: int, show_id: str = "s1") -> list[StoreItem]:
    return [
        EpisodeRecord(id=f"e{i}", show_id=show_id, updated_at=FIXED_NOW).to_item()
        for i in range(count)
    ]


class TestBackoff:
    """Tests for the retry delay schedule."""

    def test_doubles_then_caps(self, store: SqliteStore) -> None:
        """Delays double from the base and stop at the cap."""
        writer = BatchWriter(store)

        assert [writer.backoff_ms(n) for n in range(1, 8)] == [
            100,
            200,
            400,
            800,
            1600,
            2000,
            2000,
        ]

    def test_custom_config(self, store: SqliteStore) -> None:
        """Base and cap come from the config."""
        writer = BatchWriter(
            store, SyncConfig(backoff_base_ms=10, backoff_cap_ms=30)
        )

        assert writer.backoff_ms(1) == 20
        assert writer.backoff_ms(5) == 30


class TestWrite:
    """Tests for chunking and unprocessed retries."""

    def test_chunks_of_twenty_five(self, store: SqliteStore) -> None:
        """Thirty items go out as 25 then 5."""
        recording = RecordingStore(store)
        sleeper = FakeSleeper()
        writer = BatchWriter(recording, sleep=sleeper)  # type: ignore[arg-type]

        written = writer.write(make_items(30))

        assert written == 30
        assert recording.batch_sizes == [25, 5]
        assert sleeper.calls == []
        assert store.get(episode_key("s1", "e29")) is not None

    def test_empty_input_makes_no_calls(self, store: SqliteStore) -> None:
        """Nothing to write means no batch calls."""
        recording = RecordingStore(store)
        writer = BatchWriter(recording)  # type: ignore[arg-type]

        assert writer.write([]) == 0
        assert recording.batch_calls == []

    def test_retries_only_unprocessed(self, store: SqliteStore) -> None:
        """One unprocessed item is resent alone before the next chunk."""
        recording = RecordingStore(store, unprocessed_plan=[1])
        sleeper = FakeSleeper()
        writer = BatchWriter(recording, sleep=sleeper)  # type: ignore[arg-type]
        items = make_items(30)

        writer.write(items)

        assert recording.batch_sizes == [25, 1, 5]
        assert recording.batch_calls[1] == [items[24]]
        assert sleeper.calls == [0.1]
        assert store.get(episode_key("s1", "e24")) is not None

    def test_persistent_unprocessed_fails(self, store: SqliteStore) -> None:
        """After eight calls with leftovers the write fails."""
        recording = RecordingStore(store, unprocessed_plan=[1] * 20)
        sleeper = FakeSleeper()
        writer = BatchWriter(recording, sleep=sleeper)  # type: ignore[arg-type]

        with pytest.raises(StoreWriteFailure) as exc_info:
            writer.write(make_items(3))

        assert exc_info.value.attempts == 8
        assert exc_info.value.unprocessed == 1
        assert len(recording.batch_calls) == 8
        assert sleeper.calls == [0.1, 0.2, 0.4, 0.8, 1.6, 2.0, 2.0]
