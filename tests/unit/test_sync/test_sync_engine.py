"""Unit tests for the incremental sync engine."""

from collections.abc import Generator
from pathlib import Path

import pytest

from showsync.catalog.models import Episode
from showsync.store.keys import episode_key, show_meta_key
from showsync.store.models import EpisodeRecord, ShowRecord
from showsync.store.store import SqliteStore
from showsync.sync.engine import SyncEngine, select_new_items
from showsync.sync.models import SyncConfig
from tests.helpers.store import RecordingStore, open_store, seed_subscription
from tests.helpers.time import FIXED_NOW, FakeClock, FakeSleeper
from tests.helpers.upstream import (
    UpstreamStub,
    build_fetcher,
    episode_payload,
    episodes_page,
)


@pytest.fixture
def store(tmp_path: Path) -> Generator[SqliteStore]:
    """Create a connected store."""
    store = open_store(tmp_path)
    yield store
    store.close()


@pytest.fixture
def clock() -> FakeClock:
    """Create a controllable clock."""
    return FakeClock()


def make_engine(
    store: SqliteStore | RecordingStore,
    stub: UpstreamStub,
    clock: FakeClock,
    config: SyncConfig | None = None,
) -> SyncEngine:
    sleeper = FakeSleeper()
    _, _, fetcher = build_fetcher(stub, clock, sleeper)
    return SyncEngine(
        store,  # type: ignore[arg-type]
        fetcher,
        config=config,
        clock=clock,
        sleep=sleeper,
        run_id="test-run",
    )


class TestSelectNewItems:
    """Tests for the new-item selection."""

    def test_filters_known_and_keeps_order(self) -> None:
        """Known ids are dropped and fetched order is kept."""
        fetched = [Episode(id="e3"), Episode(id="e2"), Episode(id="e1")]

        new_items = select_new_items(fetched, {"e2"})

        assert [item.id for item in new_items] == ["e3", "e1"]

    def test_duplicates_kept_once(self) -> None:
        """An id repeated across pages is written once."""
        fetched = [Episode(id="e2"), Episode(id="e1"), Episode(id="e2")]

        new_items = select_new_items(fetched, set())

        assert [item.id for item in new_items] == ["e2", "e1"]


class TestSyncRun:
    """Tests for a full sync pass."""

    def test_upserts_only_new_items(
        self, store: SqliteStore, clock: FakeClock
    ) -> None:
        """One batch write with the two new items and one metadata put."""
        seed_subscription(
            store, "u1", "show-1", FIXED_NOW, title="Show One", publisher="Pub"
        )
        store.put(
            EpisodeRecord(id="ep-1", show_id="show-1", updated_at=FIXED_NOW).to_item()
        )
        stub = UpstreamStub()
        stub.add_json(
            "/shows/show-1/episodes",
            episodes_page(
                "show-1",
                [
                    episode_payload("ep-1", release_date="2024-04-30"),
                    episode_payload("ep-2", release_date="2024-04-29"),
                ],
                next_offset=2,
            ),
        )
        stub.add_json(
            "/shows/show-1/episodes",
            episodes_page("show-1", [episode_payload("ep-3")]),
        )
        recording = RecordingStore(store)

        summary = make_engine(recording, stub, clock).run()

        assert summary.collections_processed == 1
        assert summary.items_upserted == 2
        assert summary.failures == []
        assert len(recording.batch_calls) == 1
        assert [item["episode_id"] for item in recording.batch_calls[0]] == [
            "ep-2",
            "ep-3",
        ]
        assert [item["sk"] for item in recording.puts] == ["meta"]
        assert stub.calls("/shows/show-1/episodes")[1].url.params["offset"] == "2"

        meta = store.get(show_meta_key("show-1"))
        assert meta is not None
        record = ShowRecord.from_item(meta)
        assert record.title == "Show One"
        assert record.publisher == "Pub"
        assert record.known_item_count == 3
        assert record.last_item_published_at == "2024-04-30"
        assert record.last_refreshed_at == FIXED_NOW
        assert len(record.info_hash) == 64

    def test_stored_item_fields(self, store: SqliteStore, clock: FakeClock) -> None:
        """Written items carry the normalized episode fields."""
        seed_subscription(store, "u1", "show-1", FIXED_NOW)
        stub = UpstreamStub()
        stub.add_json(
            "/shows/show-1/episodes",
            episodes_page("show-1", [episode_payload("ep-1", duration_ms=61_000)]),
        )

        make_engine(store, stub, clock).run()

        item = store.get(episode_key("show-1", "ep-1"))
        assert item is not None
        record = EpisodeRecord.from_item(item)
        assert record.duration_sec == 61
        assert record.audio_url == "https://audio.test/ep-1.mp3"
        assert record.updated_at == FIXED_NOW

    def test_second_run_is_idempotent(
        self, store: SqliteStore, clock: FakeClock
    ) -> None:
        """Re-running without upstream changes writes no items."""
        seed_subscription(store, "u1", "show-1", FIXED_NOW)
        stub = UpstreamStub()
        stub.add_json(
            "/shows/show-1/episodes",
            episodes_page(
                "show-1", [episode_payload("ep-2"), episode_payload("ep-1")]
            ),
        )
        recording = RecordingStore(store)
        engine = make_engine(recording, stub, clock)

        first = engine.run()
        clock.advance(3600)
        second = engine.run()

        assert first.items_upserted == 2
        assert second.items_upserted == 0
        assert len(recording.batch_calls) == 1
        meta = store.get(show_meta_key("show-1"))
        assert meta is not None
        record = ShowRecord.from_item(meta)
        assert record.last_refreshed_at == clock.now
        assert record.known_item_count == 2

    def test_shared_show_synced_once(
        self, store: SqliteStore, clock: FakeClock
    ) -> None:
        """Several subscribers of one show produce one collection pass."""
        seed_subscription(store, "u1", "show-1", FIXED_NOW, title="First")
        seed_subscription(store, "u2", "show-1", FIXED_NOW, title="Second")
        stub = UpstreamStub()
        stub.add_json("/shows/show-1/episodes", episodes_page("show-1", []))

        summary = make_engine(store, stub, clock).run()

        assert summary.collections_processed == 1
        assert len(stub.calls("/shows/show-1/episodes")) == 1
        meta = store.get(show_meta_key("show-1"))
        assert meta is not None
        assert meta["title"] == "First"
        assert meta["last_item_published_at"] is None

    def test_failure_is_isolated(self, store: SqliteStore, clock: FakeClock) -> None:
        """A failing collection is recorded and the pass continues."""
        seed_subscription(store, "u1", "show-bad", FIXED_NOW)
        seed_subscription(store, "u1", "show-good", FIXED_NOW)
        stub = UpstreamStub()
        stub.add_status("/shows/show-bad/episodes", 500)
        stub.add_json(
            "/shows/show-good/episodes",
            episodes_page("show-good", [episode_payload("ep-1")]),
        )

        summary = make_engine(store, stub, clock).run()

        assert summary.collections_processed == 1
        assert summary.items_upserted == 1
        assert summary.collections_failed == 1
        failure = summary.failures[0]
        assert failure.collection_id == "show-bad"
        assert failure.error_class == "UPSTREAM_UNAVAILABLE"
        assert store.get(show_meta_key("show-bad")) is None
        assert store.get(show_meta_key("show-good")) is not None

    def test_no_subscriptions(self, store: SqliteStore, clock: FakeClock) -> None:
        """An empty store yields an empty summary."""
        summary = make_engine(store, UpstreamStub(), clock).run()

        assert summary.collections_processed == 0
        assert summary.to_dict()["failures"] == []

    def test_duration_reported_in_whole_milliseconds(
        self, store: SqliteStore, clock: FakeClock
    ) -> None:
        """The summary duration is an integer millisecond count."""
        summary = make_engine(store, UpstreamStub(), clock).run()

        duration = summary.to_dict()["duration_ms"]
        assert isinstance(duration, int)
        assert duration >= 0

    def test_max_pages_from_config(
        self, store: SqliteStore, clock: FakeClock
    ) -> None:
        """The page window is bounded by the configured max_pages."""
        seed_subscription(store, "u1", "show-1", FIXED_NOW)
        stub = UpstreamStub()
        stub.add_json(
            "/shows/show-1/episodes",
            episodes_page("show-1", [episode_payload("ep-1")], next_offset=1),
        )

        summary = make_engine(store, stub, clock, SyncConfig(max_pages=3)).run()

        assert len(stub.calls("/shows/show-1/episodes")) == 3
        assert summary.items_upserted == 1
