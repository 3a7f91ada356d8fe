"""Component wiring and the sync/proxy entry points."""

import threading
import uuid
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from showsync.cache.read_through import ReadThroughCache
from showsync.catalog.fetcher import CatalogFetcher
from showsync.clock import Clock, Sleeper, real_sleep, utc_now
from showsync.proxy.router import CatalogProxy
from showsync.ratelimit.limiter import RateLimiter
from showsync.settings.app import AppSettings, get_settings
from showsync.store.store import SqliteStore
from showsync.sync.engine import SyncEngine
from showsync.sync.models import SubscriptionRefreshSummary, SyncConfig, SyncSummary
from showsync.sync.subscriptions import SubscriptionRefresher
from showsync.upstream.auth import TokenProvider
from showsync.upstream.client import RetryingHttpClient
from showsync.upstream.secrets import (
    CachedSecretStore,
    EnvironmentSecretStore,
    SecretStore,
)


logger = structlog.get_logger()


@dataclass
class Runtime:
    """Wired component graph shared by the entry points.

    Holds the only long-lived in-process state: the token cache inside
    ``token_provider`` and the secret cache inside its secret store.
    """

    settings: AppSettings
    store: SqliteStore
    http_client: httpx.Client
    token_provider: TokenProvider
    upstream: RetryingHttpClient
    fetcher: CatalogFetcher
    cache: ReadThroughCache
    limiter: RateLimiter
    proxy: CatalogProxy
    clock: Clock
    sleep: Sleeper

    @classmethod
    def build(  # noqa: PLR0913
        cls,
        settings: AppSettings | None = None,
        secrets: SecretStore | None = None,
        transport: httpx.BaseTransport | None = None,
        clock: Clock = utc_now,
        sleep: Sleeper = real_sleep,
        run_id: str | None = None,
    ) -> "Runtime":
        """Build and connect every component from settings.

        Args:
            settings: Application settings (read from the environment if omitted).
            secrets: Secret store for client credentials.
            transport: Optional httpx transport (tests pass a MockTransport).
            clock: Time source.
            sleep: Blocking sleep for backoff.
            run_id: Optional run ID for logging context.

        Returns:
            Connected runtime.
        """
        settings = settings or get_settings()
        secrets = secrets or CachedSecretStore(EnvironmentSecretStore())

        store = SqliteStore(settings.db_path, run_id=run_id)
        store.connect()

        http_client = httpx.Client(
            timeout=settings.http_timeout_seconds, transport=transport
        )
        token_provider = TokenProvider(
            secrets=secrets,
            client_id_param=settings.client_id_param,
            client_secret_param=settings.client_secret_param,
            token_url=settings.token_url,
            http_client=http_client,
            clock=clock,
        )
        upstream = RetryingHttpClient(
            base_url=settings.api_base_url,
            token_provider=token_provider,
            http_client=http_client,
            sleep=sleep,
        )
        fetcher = CatalogFetcher(upstream, market=settings.market)
        cache = ReadThroughCache(store, clock=clock)
        limiter = RateLimiter(store, clock=clock)

        return cls(
            settings=settings,
            store=store,
            http_client=http_client,
            token_provider=token_provider,
            upstream=upstream,
            fetcher=fetcher,
            cache=cache,
            limiter=limiter,
            proxy=CatalogProxy(fetcher, cache, limiter, store),
            clock=clock,
            sleep=sleep,
        )

    def sync_engine(self, run_id: str | None = None) -> SyncEngine:
        """Create a sync engine over this runtime's components."""
        return SyncEngine(
            self.store,
            self.fetcher,
            config=SyncConfig(max_pages=self.settings.refresh_max_pages),
            clock=self.clock,
            sleep=self.sleep,
            run_id=run_id,
        )

    def subscription_refresher(self) -> SubscriptionRefresher:
        """Create a subscription refresher over this runtime's components."""
        return SubscriptionRefresher(self.store, self.fetcher, clock=self.clock)

    def close(self) -> None:
        """Release the HTTP client and the store connection."""
        self.http_client.close()
        self.store.close()


_default_runtime: Runtime | None = None
_default_lock = threading.Lock()


def get_runtime() -> Runtime:
    """Return the process-wide runtime, building it on first use."""
    global _default_runtime  # noqa: PLW0603
    with _default_lock:
        if _default_runtime is None:
            _default_runtime = Runtime.build()
        return _default_runtime


def reset_runtime() -> None:
    """Close and drop the process-wide runtime."""
    global _default_runtime  # noqa: PLW0603
    with _default_lock:
        if _default_runtime is not None:
            _default_runtime.close()
        _default_runtime = None


def sync(runtime: Runtime | None = None) -> SyncSummary:
    """Run one sync pass over every subscribed show.

    Args:
        runtime: Component graph (the process-wide one if omitted).

    Returns:
        Sync summary with per-collection failures.
    """
    runtime = runtime or get_runtime()
    run_id = str(uuid.uuid4())
    logger.info("sync_invoked", run_id=run_id)
    return runtime.sync_engine(run_id=run_id).run()


def refresh_subscriptions(
    runtime: Runtime | None = None,
) -> SubscriptionRefreshSummary:
    """Refresh display fields of every subscription row."""
    runtime = runtime or get_runtime()
    return runtime.subscription_refresher().run()


def proxy(
    operation: str,
    args: dict[str, Any],
    identity_key: str | None = None,
    runtime: Runtime | None = None,
) -> dict[str, Any]:
    """Serve one catalog operation.

    Args:
        operation: Operation name or alias.
        args: Operation arguments.
        identity_key: Caller identity, None for anonymous callers.
        runtime: Component graph (the process-wide one if omitted).

    Returns:
        JSON-serializable result.
    """
    runtime = runtime or get_runtime()
    return runtime.proxy.proxy(operation, args, identity_key)
