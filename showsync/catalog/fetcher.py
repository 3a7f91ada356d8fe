"""Typed access to the upstream catalog operations."""

from typing import Any, TypeVar
from urllib.parse import quote

import structlog
from pydantic import BaseModel, ValidationError

from showsync.catalog.constants import (
    DEFAULT_ITEMS_LIMIT,
    DEFAULT_SEARCH_LIMIT,
    MAX_PAGE_SIZE,
    MIN_PAGE_SIZE,
    SYNC_MAX_PAGES,
    SYNC_PAGE_SIZE,
)
from showsync.catalog.models import (
    Episode,
    EpisodePage,
    SearchPage,
    Show,
    UpstreamEpisode,
    UpstreamEpisodesPage,
    UpstreamSearchResponse,
    UpstreamShow,
    UpstreamShowsPage,
)
from showsync.catalog.normalize import (
    normalize_episode,
    normalize_episodes_page,
    normalize_search_page,
    normalize_show,
)
from showsync.errors import InvalidArgumentError, UpstreamUnavailable
from showsync.upstream.client import RetryingHttpClient


logger = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)


def clamp_page_size(limit: int) -> int:
    """Clamp a requested page size to what the upstream accepts (1..50)."""
    return max(MIN_PAGE_SIZE, min(int(limit), MAX_PAGE_SIZE))


def _require_text(value: str | None, name: str) -> str:
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        msg = f"{name} is required"
        raise InvalidArgumentError(msg, details={"argument": name})
    return text


def _parse(model: type[ModelT], payload: Any, operation: str) -> ModelT:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        msg = f"Malformed upstream payload for {operation}: {exc.error_count()} errors"
        raise UpstreamUnavailable(msg, body=str(exc)[:500]) from exc


class CatalogFetcher:
    """Fetches shows and episodes through the retrying client.

    Every method validates the raw payload against an explicit upstream
    shape and returns normalized types. A payload that does not match
    raises UpstreamUnavailable.
    """

    def __init__(self, http: RetryingHttpClient, market: str = "US") -> None:
        """Initialize the fetcher.

        Args:
            http: Retrying upstream client.
            market: Market code sent with every request.
        """
        self._http = http
        self._market = market
        self._log = logger.bind(component="catalog", market=market)

    def search(
        self, term: str, limit: int = DEFAULT_SEARCH_LIMIT, offset: int = 0
    ) -> SearchPage:
        """Search shows by free-text term.

        Args:
            term: Search term.
            limit: Page size (clamped to 1..50).
            offset: Result offset.

        Returns:
            Page of normalized shows.

        Raises:
            InvalidArgumentError: If the term is empty.
        """
        query = _require_text(term, "term")
        payload = self._http.get_json(
            "/search",
            {
                "q": query,
                "type": "show",
                "market": self._market,
                "limit": str(clamp_page_size(limit)),
                "offset": str(max(0, int(offset))),
            },
            operation="search",
        )

        if isinstance(payload, dict) and "shows" not in payload and "items" in payload:
            page = _parse(UpstreamShowsPage, payload, "search")
        else:
            page = _parse(UpstreamSearchResponse, payload, "search").shows

        result = normalize_search_page(page)
        self._log.debug("catalog_search", results=len(result.items))
        return result

    def get_collection(self, collection_id: str) -> Show:
        """Fetch one show by id.

        Raises:
            InvalidArgumentError: If the id is empty.
            NotFound: If the show does not exist upstream.
        """
        show_id = _require_text(collection_id, "showId")
        payload = self._http.get_json(
            f"/shows/{quote(show_id, safe='')}",
            {"market": self._market},
            operation="getCollection",
        )
        return normalize_show(_parse(UpstreamShow, payload, "getCollection"))

    def get_items(
        self,
        collection_id: str,
        limit: int = DEFAULT_ITEMS_LIMIT,
        cursor: str | None = None,
    ) -> EpisodePage:
        """Fetch one page of a show's episodes, newest first.

        Args:
            collection_id: Show id.
            limit: Page size (clamped to 1..50).
            cursor: Offset cursor from a previous page.

        Returns:
            Page of normalized episodes with the next cursor.

        Raises:
            InvalidArgumentError: If the id is empty.
        """
        show_id = _require_text(collection_id, "showId")
        params = {"market": self._market, "limit": str(clamp_page_size(limit))}
        if cursor:
            params["offset"] = str(cursor)

        payload = self._http.get_json(
            f"/shows/{quote(show_id, safe='')}/episodes",
            params,
            operation="getItems",
        )
        page = _parse(UpstreamEpisodesPage, payload, "getItems")
        return normalize_episodes_page(page, show_id)

    def get_item(self, item_id: str) -> Episode:
        """Fetch one episode by id.

        Raises:
            InvalidArgumentError: If the id is empty.
            NotFound: If the episode does not exist upstream.
        """
        episode_id = _require_text(item_id, "episodeId")
        payload = self._http.get_json(
            f"/episodes/{quote(episode_id, safe='')}",
            {"market": self._market},
            operation="getItem",
        )
        return normalize_episode(_parse(UpstreamEpisode, payload, "getItem"))

    def fetch_recent_items(
        self,
        collection_id: str,
        max_pages: int = SYNC_MAX_PAGES,
        page_size: int = SYNC_PAGE_SIZE,
    ) -> list[Episode]:
        """Fetch the bounded window of a show's most recent episodes.

        Follows the offset cursor for at most ``max_pages`` pages and stops
        early at a page without items or without a following page.

        Args:
            collection_id: Show id.
            max_pages: Maximum pages to read.
            page_size: Episodes per page.

        Returns:
            Episodes in upstream order (most recent first).
        """
        items: list[Episode] = []
        cursor: str | None = None

        for page_number in range(max_pages):
            page = self.get_items(collection_id, limit=page_size, cursor=cursor)
            items.extend(page.items)
            self._log.debug(
                "catalog_page_fetched",
                show_id=collection_id,
                page=page_number,
                items=len(page.items),
            )
            if not page.items or not page.next_cursor:
                break
            cursor = page.next_cursor

        return items
