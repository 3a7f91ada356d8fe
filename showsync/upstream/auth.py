"""OAuth2 client-credentials token management for the upstream API."""

import threading
from datetime import timedelta

import httpx
import structlog

from showsync.clock import Clock, utc_now
from showsync.errors import UpstreamAuthError, UpstreamUnavailable
from showsync.upstream.constants import (
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
    HTTP_STATUS_UNAUTHORIZED,
    MAX_ERROR_BODY_CHARS,
    TOKEN_EXPIRY_SKEW_SECONDS,
    TOKEN_MIN_LIFETIME_SECONDS,
)
from showsync.upstream.metrics import UpstreamMetrics
from showsync.upstream.models import Token
from showsync.upstream.redact import redact_url_credentials
from showsync.upstream.secrets import SecretStore


logger = structlog.get_logger()


class TokenProvider:
    """Acquires and caches the bearer token for the upstream API.

    The token is fetched lazily on first use and reused while it has more
    than the safety margin of lifetime left. ``invalidate()`` drops it after
    an upstream 401 so the next call exchanges credentials again. The cached
    token is guarded by a lock; concurrent callers wait for a single
    in-flight exchange instead of each starting their own.
    """

    def __init__(  # noqa: PLR0913
        self,
        secrets: SecretStore,
        client_id_param: str,
        client_secret_param: str,
        token_url: str,
        http_client: httpx.Client,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the token provider.

        Args:
            secrets: Secret store holding the client credentials.
            client_id_param: Name of the client id parameter.
            client_secret_param: Name of the client secret parameter.
            token_url: OAuth2 token endpoint.
            http_client: HTTP client used for the token exchange.
            clock: Time source.
        """
        self._secrets = secrets
        self._client_id_param = client_id_param
        self._client_secret_param = client_secret_param
        self._token_url = token_url
        self._http = http_client
        self._clock = clock
        self._token: Token | None = None
        self._lock = threading.Lock()
        self._metrics = UpstreamMetrics.get_instance()
        self._log = logger.bind(component="upstream", subcomponent="auth")

    @property
    def cached_token(self) -> Token | None:
        """Currently cached token, if any."""
        with self._lock:
            return self._token

    def get_token(self) -> str:
        """Return a usable bearer token, exchanging credentials if needed.

        Returns:
            Access token string.

        Raises:
            ConfigurationError: If the client credentials are unavailable.
            UpstreamAuthError: If the token endpoint rejects the credentials
                or its response lacks an access token.
            UpstreamUnavailable: If the token endpoint cannot be reached.
        """
        with self._lock:
            if self._token is not None and self._token.is_usable(self._clock()):
                return self._token.value

            self._token = self._exchange()
            return self._token.value

    def invalidate(self) -> None:
        """Drop the cached token."""
        with self._lock:
            if self._token is not None:
                self._metrics.record_token_invalidation()
                self._log.info("token_invalidated")
            self._token = None

    def _exchange(self) -> Token:
        client_id = self._secrets.get_parameter(self._client_id_param)
        client_secret = self._secrets.get_parameter(self._client_secret_param)

        try:
            response = self._http.post(
                self._token_url,
                data={"grant_type": "client_credentials"},
                auth=(client_id, client_secret),
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            self._log.warning("token_exchange_network_error", error=str(exc))
            msg = f"Network error during token exchange: {exc}"
            raise UpstreamUnavailable(msg) from exc

        status = response.status_code
        if status in (HTTP_STATUS_BAD_REQUEST, HTTP_STATUS_UNAUTHORIZED):
            self._log.warning("token_exchange_rejected", status_code=status)
            msg = f"Token exchange rejected with status {status}"
            raise UpstreamAuthError(msg, details={"status_code": status})
        if not HTTP_STATUS_OK_MIN <= status < HTTP_STATUS_OK_MAX:
            self._log.warning(
                "token_exchange_failed",
                status_code=status,
                url=redact_url_credentials(self._token_url),
            )
            msg = f"Token exchange failed with status {status}"
            raise UpstreamUnavailable(
                msg, status_code=status, body=response.text[:MAX_ERROR_BODY_CHARS]
            )

        try:
            payload = response.json()
        except ValueError as exc:
            msg = "Token response is not valid JSON"
            raise UpstreamAuthError(msg) from exc

        access_token = (
            payload.get("access_token") if isinstance(payload, dict) else None
        )
        if not access_token or not isinstance(access_token, str):
            msg = "Missing access token in token response"
            raise UpstreamAuthError(msg)

        expires_in = payload.get("expires_in")
        if not isinstance(expires_in, int | float):
            expires_in = 0
        lifetime = max(
            int(expires_in) - TOKEN_EXPIRY_SKEW_SECONDS, TOKEN_MIN_LIFETIME_SECONDS
        )
        token = Token(
            value=access_token,
            expires_at=self._clock() + timedelta(seconds=lifetime),
        )

        self._metrics.record_token_refresh()
        self._log.info("token_refreshed", lifetime_seconds=lifetime)
        return token
