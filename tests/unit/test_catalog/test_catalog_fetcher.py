"""Unit tests for the catalog fetcher against a stubbed upstream."""

import pytest

from showsync.catalog.fetcher import CatalogFetcher, clamp_page_size
from showsync.errors import InvalidArgumentError, NotFound, UpstreamUnavailable
from tests.helpers.time import FakeClock, FakeSleeper
from tests.helpers.upstream import (
    UpstreamStub,
    build_fetcher,
    episode_payload,
    episodes_page,
    show_payload,
)


@pytest.fixture
def stub() -> UpstreamStub:
    """Create an upstream stub."""
    return UpstreamStub()


@pytest.fixture
def fetcher(stub: UpstreamStub) -> CatalogFetcher:
    """Create a fetcher wired to the stub."""
    _, _, catalog = build_fetcher(stub, FakeClock(), FakeSleeper())
    return catalog


class TestClampPageSize:
    """Tests for page size clamping."""

    @pytest.mark.parametrize(
        ("limit", "expected"), [(0, 1), (-5, 1), (1, 1), (20, 20), (50, 50), (500, 50)]
    )
    def test_clamp(self, limit: int, expected: int) -> None:
        """Page sizes are clamped to 1..50."""
        assert clamp_page_size(limit) == expected


class TestSearch:
    """Tests for show search."""

    def test_wrapped_response(
        self, stub: UpstreamStub, fetcher: CatalogFetcher
    ) -> None:
        """Results under ``shows`` are normalized."""
        stub.add_json(
            "/search",
            {"shows": {"items": [show_payload("s1", name="Daily")], "next": None}},
        )

        page = fetcher.search("  daily  ", limit=100)

        assert [show.title for show in page.items] == ["Daily"]
        params = stub.calls("/search")[0].url.params
        assert params["q"] == "daily"
        assert params["type"] == "show"
        assert params["market"] == "US"
        assert params["limit"] == "50"
        assert params["offset"] == "0"

    def test_flat_response(self, stub: UpstreamStub, fetcher: CatalogFetcher) -> None:
        """A flat paging object is accepted too."""
        stub.add_json("/search", {"items": [show_payload("s2")], "next": None})

        page = fetcher.search("news")

        assert [show.id for show in page.items] == ["s2"]

    def test_empty_wrapper(self, stub: UpstreamStub, fetcher: CatalogFetcher) -> None:
        """A response without results yields an empty page."""
        stub.add_json("/search", {})

        assert fetcher.search("nothing").items == []

    @pytest.mark.parametrize("term", ["", "   "])
    def test_empty_term_rejected(
        self, stub: UpstreamStub, fetcher: CatalogFetcher, term: str
    ) -> None:
        """Blank terms fail before any request."""
        with pytest.raises(InvalidArgumentError, match="term is required"):
            fetcher.search(term)

        assert stub.requests == []


class TestGetCollection:
    """Tests for single-show lookup."""

    def test_fetches_show(self, stub: UpstreamStub, fetcher: CatalogFetcher) -> None:
        """The show is fetched with the market parameter."""
        stub.add_json("/shows/s1", show_payload("s1", name="Daily"))

        show = fetcher.get_collection("s1")

        assert show.title == "Daily"
        assert stub.calls("/shows/s1")[0].url.params["market"] == "US"

    def test_missing_show(self, fetcher: CatalogFetcher) -> None:
        """Unknown shows raise NotFound."""
        with pytest.raises(NotFound):
            fetcher.get_collection("nope")

    def test_malformed_payload(
        self, stub: UpstreamStub, fetcher: CatalogFetcher
    ) -> None:
        """Payloads missing required fields are upstream failures."""
        stub.add_json("/shows/s1", {"name": "no id"})

        with pytest.raises(UpstreamUnavailable, match="Malformed upstream payload"):
            fetcher.get_collection("s1")

    def test_empty_id_rejected(self, fetcher: CatalogFetcher) -> None:
        """An empty id is an invalid argument."""
        with pytest.raises(InvalidArgumentError, match="showId is required"):
            fetcher.get_collection("")


class TestGetItems:
    """Tests for episode listing."""

    def test_passes_cursor_as_offset(
        self, stub: UpstreamStub, fetcher: CatalogFetcher
    ) -> None:
        """The cursor is sent as the offset parameter."""
        stub.add_json(
            "/shows/s1/episodes",
            episodes_page("s1", [episode_payload("e3")], next_offset=60),
        )

        page = fetcher.get_items("s1", limit=10, cursor="50")

        params = stub.calls("/shows/s1/episodes")[0].url.params
        assert params["offset"] == "50"
        assert params["limit"] == "10"
        assert page.next_cursor == "60"
        assert page.items[0].show_id == "s1"

    def test_first_page_has_no_offset(
        self, stub: UpstreamStub, fetcher: CatalogFetcher
    ) -> None:
        """Without a cursor no offset is sent."""
        stub.add_json("/shows/s1/episodes", episodes_page("s1", []))

        fetcher.get_items("s1")

        assert "offset" not in stub.calls("/shows/s1/episodes")[0].url.params


class TestGetItem:
    """Tests for single-episode lookup."""

    def test_fetches_episode(self, stub: UpstreamStub, fetcher: CatalogFetcher) -> None:
        """The embedded show reference provides the show id."""
        stub.add_json("/episodes/e1", episode_payload("e1", show={"id": "s1"}))

        episode = fetcher.get_item("e1")

        assert episode.id == "e1"
        assert episode.show_id == "s1"

    def test_empty_id_rejected(self, fetcher: CatalogFetcher) -> None:
        """An empty id is an invalid argument."""
        with pytest.raises(InvalidArgumentError, match="episodeId is required"):
            fetcher.get_item("  ")


class TestFetchRecentItems:
    """Tests for the bounded recent-items window."""

    def test_follows_cursor_up_to_max_pages(
        self, stub: UpstreamStub, fetcher: CatalogFetcher
    ) -> None:
        """Pages are read in order until max_pages."""
        stub.add_json(
            "/shows/s1/episodes",
            episodes_page("s1", [episode_payload("e1"), episode_payload("e2")], 2),
        )
        stub.add_json(
            "/shows/s1/episodes",
            episodes_page("s1", [episode_payload("e3")], next_offset=3),
        )

        items = fetcher.fetch_recent_items("s1", max_pages=2, page_size=2)

        assert [item.id for item in items] == ["e1", "e2", "e3"]
        assert len(stub.calls("/shows/s1/episodes")) == 2

    def test_stops_without_next(
        self, stub: UpstreamStub, fetcher: CatalogFetcher
    ) -> None:
        """A page without a following page ends the walk."""
        stub.add_json(
            "/shows/s1/episodes", episodes_page("s1", [episode_payload("e1")])
        )

        items = fetcher.fetch_recent_items("s1", max_pages=5)

        assert [item.id for item in items] == ["e1"]
        assert len(stub.calls("/shows/s1/episodes")) == 1

    def test_stops_on_empty_page(
        self, stub: UpstreamStub, fetcher: CatalogFetcher
    ) -> None:
        """An empty page ends the walk even when next is set."""
        stub.add_json("/shows/s1/episodes", episodes_page("s1", [], next_offset=50))

        assert fetcher.fetch_recent_items("s1", max_pages=5) == []
        assert len(stub.calls("/shows/s1/episodes")) == 1
