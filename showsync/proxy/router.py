"""Request routing for catalog proxy calls."""

from collections.abc import Callable, Mapping
from typing import Any

import structlog

from showsync.cache.keys import make_cache_key
from showsync.cache.read_through import ReadThroughCache
from showsync.catalog.constants import DEFAULT_ITEMS_LIMIT, DEFAULT_SEARCH_LIMIT
from showsync.catalog.fetcher import CatalogFetcher
from showsync.errors import InvalidArgumentError
from showsync.ratelimit.limiter import RateLimiter
from showsync.store.keys import SUBSCRIPTION_PREFIX, USER_PREFIX, StoreKey
from showsync.store.protocols import PersistentStore


logger = structlog.get_logger()

SEARCH = "search"
GET_COLLECTION = "getCollection"
GET_ITEMS = "getItems"
GET_ITEM = "getItem"

OPERATION_ALIASES: dict[str, str] = {
    SEARCH: SEARCH,
    "searchShows": SEARCH,
    "searchCatalog": SEARCH,
    GET_COLLECTION: GET_COLLECTION,
    "show": GET_COLLECTION,
    "getShow": GET_COLLECTION,
    GET_ITEMS: GET_ITEMS,
    "episodes": GET_ITEMS,
    "getEpisodes": GET_ITEMS,
    "getShowEpisodes": GET_ITEMS,
    GET_ITEM: GET_ITEM,
    "episode": GET_ITEM,
    "getEpisode": GET_ITEM,
}

CACHE_TTLS: dict[str, int] = {
    SEARCH: 300,
    GET_COLLECTION: 3600,
    GET_ITEMS: 600,
    GET_ITEM: 3600,
}

PERSONALIZATION_FLAG = "includeSubscriptionState"

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})


def canonical_operation(operation: str) -> str:
    """Resolve an operation name or alias to its canonical name.

    Raises:
        InvalidArgumentError: If the operation is not supported.
    """
    canonical = OPERATION_ALIASES.get(operation)
    if canonical is None:
        msg = f"Unsupported operation {operation}"
        raise InvalidArgumentError(msg, details={"operation": operation})
    return canonical


def _int_arg(args: Mapping[str, Any], name: str, default: int) -> int:
    value = args.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        msg = f"{name} must be an integer"
        raise InvalidArgumentError(msg, details={"argument": name}) from exc


def _str_arg(args: Mapping[str, Any], name: str) -> str:
    value = args.get(name)
    return value.strip() if isinstance(value, str) else ""


def _flag_arg(args: Mapping[str, Any], name: str) -> bool:
    value = args.get(name)
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


class CatalogProxy:
    """Serves catalog operations for application callers.

    Every call is counted by the rate limiter first. Non-personalized
    results go through the read-through cache; personalized search results
    are fetched fresh and annotated with the caller's subscription state.
    Results are plain JSON-serializable dictionaries.
    """

    def __init__(
        self,
        fetcher: CatalogFetcher,
        cache: ReadThroughCache,
        limiter: RateLimiter,
        store: PersistentStore,
    ) -> None:
        """Initialize the proxy.

        Args:
            fetcher: Upstream catalog fetcher.
            cache: Read-through cache.
            limiter: Local rate limiter.
            store: Store holding subscription rows.
        """
        self._fetcher = fetcher
        self._cache = cache
        self._limiter = limiter
        self._store = store
        self._log = logger.bind(component="proxy")

    def proxy(
        self,
        operation: str,
        args: Mapping[str, Any],
        identity_key: str | None = None,
    ) -> dict[str, Any]:
        """Route one operation.

        Args:
            operation: Operation name or alias.
            args: Operation arguments.
            identity_key: Caller identity, None for anonymous callers.

        Returns:
            JSON-serializable result.

        Raises:
            InvalidArgumentError: On unknown operations or bad arguments.
            RateLimitExceeded: If the caller exceeded its local ceiling.
            UpstreamError: If the upstream call failed.
        """
        canonical = canonical_operation(operation)
        self._limiter.check(identity_key, canonical)

        handlers: dict[str, Callable[[Mapping[str, Any], str | None], Any]] = {
            SEARCH: self._search,
            GET_COLLECTION: self._get_collection,
            GET_ITEMS: self._get_items,
            GET_ITEM: self._get_item,
        }
        result: dict[str, Any] = handlers[canonical](args, identity_key)
        self._log.debug("proxy_complete", operation=canonical)
        return result

    def _cached(
        self, operation: str, args: Mapping[str, Any], fetch: Callable[[], Any]
    ) -> Any:
        return self._cache.get_or_fetch(
            make_cache_key(operation, args), CACHE_TTLS[operation], fetch
        )

    def _search(
        self, args: Mapping[str, Any], identity_key: str | None
    ) -> dict[str, Any]:
        term = _str_arg(args, "term")
        if not term:
            msg = "term is required"
            raise InvalidArgumentError(msg, details={"argument": "term"})
        limit = _int_arg(args, "limit", DEFAULT_SEARCH_LIMIT)
        offset = _int_arg(args, "offset", 0)

        def fetch() -> dict[str, Any]:
            return self._fetcher.search(term, limit, offset).model_dump(mode="json")

        if identity_key is not None and _flag_arg(args, PERSONALIZATION_FLAG):
            result: dict[str, Any] = self._cache.bypass(SEARCH, fetch)
            subscribed = self._subscribed_show_ids(identity_key)
            for item in result["items"]:
                item["is_subscribed"] = item["id"] in subscribed
            return result

        cache_args = {"term": term, "limit": limit, "offset": offset}
        cached: dict[str, Any] = self._cached(SEARCH, cache_args, fetch)
        return cached

    def _get_collection(
        self, args: Mapping[str, Any], _identity_key: str | None
    ) -> dict[str, Any]:
        show_id = _str_arg(args, "showId")
        result: dict[str, Any] = self._cached(
            GET_COLLECTION,
            {"showId": show_id},
            lambda: self._fetcher.get_collection(show_id).model_dump(mode="json"),
        )
        return result

    def _get_items(
        self, args: Mapping[str, Any], _identity_key: str | None
    ) -> dict[str, Any]:
        show_id = _str_arg(args, "showId")
        limit = _int_arg(args, "limit", DEFAULT_ITEMS_LIMIT)
        cursor = _str_arg(args, "cursor") or None
        result: dict[str, Any] = self._cached(
            GET_ITEMS,
            {"showId": show_id, "limit": limit, "cursor": cursor},
            lambda: self._fetcher.get_items(show_id, limit, cursor).model_dump(
                mode="json"
            ),
        )
        return result

    def _get_item(
        self, args: Mapping[str, Any], _identity_key: str | None
    ) -> dict[str, Any]:
        episode_id = _str_arg(args, "episodeId")
        result: dict[str, Any] = self._cached(
            GET_ITEM,
            {"episodeId": episode_id},
            lambda: self._fetcher.get_item(episode_id).model_dump(mode="json"),
        )
        return result

    def _subscribed_show_ids(self, identity_key: str) -> set[str]:
        show_ids: set[str] = set()
        start_key: StoreKey | None = None
        while True:
            page = self._store.query_by_prefix(
                f"{USER_PREFIX}{identity_key}",
                SUBSCRIPTION_PREFIX,
                start_key=start_key,
            )
            for item in page.items:
                show_id = item.get("show_id")
                if isinstance(show_id, str):
                    show_ids.add(show_id)
            if page.last_key is None:
                return show_ids
            start_key = page.last_key
