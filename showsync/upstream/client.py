"""Upstream HTTP client with token handling and bounded retries."""

import time
from typing import Any

import httpx
import structlog

from showsync.clock import Sleeper, real_sleep
from showsync.errors import (
    ErrorClass,
    NotFound,
    UpstreamAuthError,
    UpstreamRateLimitError,
    UpstreamUnavailable,
)
from showsync.upstream.auth import TokenProvider
from showsync.upstream.constants import (
    HTTP_STATUS_NOT_FOUND,
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
    HTTP_STATUS_TOO_MANY_REQUESTS,
    HTTP_STATUS_UNAUTHORIZED,
    MAX_ERROR_BODY_CHARS,
)
from showsync.upstream.metrics import UpstreamMetrics
from showsync.upstream.models import RetryPolicy, UpstreamRequest
from showsync.upstream.redact import redact_headers


logger = structlog.get_logger()


class RetryingHttpClient:
    """Executes upstream requests with the current bearer token attached.

    Every upstream call site goes through ``execute``:
    - 401: invalidate the token and retry with a freshly fetched one
    - 429: sleep for Retry-After (or 2^(attempt+1)) seconds and retry
    - 404: fail with NotFound
    - any other non-2xx or a transport error: fail with UpstreamUnavailable
    Once the attempt budget is spent, fail with UpstreamAuthError or
    UpstreamRateLimitError depending on the last response.
    """

    def __init__(  # noqa: PLR0913
        self,
        base_url: str,
        token_provider: TokenProvider,
        http_client: httpx.Client,
        policy: RetryPolicy | None = None,
        sleep: Sleeper = real_sleep,
        user_agent: str = "showsync/0.1",
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Base URL of the upstream API.
            token_provider: Source of bearer tokens.
            http_client: Underlying httpx client.
            policy: Retry policy.
            sleep: Blocking sleep used for 429 backoff.
            user_agent: User-Agent header value.
        """
        self._base_url = base_url.rstrip("/")
        self._tokens = token_provider
        self._http = http_client
        self._policy = policy or RetryPolicy()
        self._sleep = sleep
        self._user_agent = user_agent
        self._metrics = UpstreamMetrics.get_instance()
        self._log = logger.bind(component="upstream")

    @property
    def policy(self) -> RetryPolicy:
        """Retry policy in effect."""
        return self._policy

    def get_json(
        self,
        path: str,
        params: dict[str, str] | None = None,
        operation: str = "upstream",
    ) -> Any:
        """GET a path and decode the JSON body.

        Args:
            path: Path relative to the base URL.
            params: Query parameters.
            operation: Label for logs and metrics.

        Returns:
            Decoded JSON payload.

        Raises:
            UpstreamUnavailable: If the body is not valid JSON.
        """
        request = UpstreamRequest(path=path, params=params or {}, operation=operation)
        response = self.execute(request)
        try:
            return response.json()
        except ValueError as exc:
            msg = f"Upstream returned invalid JSON for {operation}"
            raise UpstreamUnavailable(
                msg,
                status_code=response.status_code,
                body=response.text[:MAX_ERROR_BODY_CHARS],
            ) from exc

    def execute(self, request: UpstreamRequest) -> httpx.Response:
        """Execute a request within the attempt budget.

        Args:
            request: The request to send.

        Returns:
            The successful (2xx) response.

        Raises:
            UpstreamAuthError: 401 on every attempt.
            UpstreamRateLimitError: 429 on every remaining attempt.
            NotFound: The upstream answered 404.
            UpstreamUnavailable: Any other non-2xx status or transport error.
        """
        url = f"{self._base_url}{request.path}"
        log = self._log.bind(operation=request.operation, path=request.path)
        last_status = 0
        last_delay: float | None = None

        for attempt in range(self._policy.max_attempts):
            is_last = attempt + 1 >= self._policy.max_attempts
            response = self._send(request, url, attempt, log)
            status = response.status_code

            if HTTP_STATUS_OK_MIN <= status < HTTP_STATUS_OK_MAX:
                return response

            last_status = status

            if status == HTTP_STATUS_UNAUTHORIZED:
                self._tokens.invalidate()
                if is_last:
                    break
                self._metrics.record_retry("auth")
                log.info("upstream_unauthorized_retry", attempt=attempt)
                continue

            if status == HTTP_STATUS_TOO_MANY_REQUESTS:
                last_delay = self._policy.rate_limit_delay(
                    response.headers.get("retry-after"), attempt
                )
                if is_last:
                    break
                self._metrics.record_retry("rate_limited")
                log.info(
                    "upstream_rate_limited_retry",
                    attempt=attempt,
                    delay_seconds=last_delay,
                )
                self._sleep(last_delay)
                continue

            body = response.text[:MAX_ERROR_BODY_CHARS]
            if status == HTTP_STATUS_NOT_FOUND:
                self._metrics.record_failure(ErrorClass.NOT_FOUND)
                msg = f"Upstream resource not found: {request.path}"
                raise NotFound(msg, status_code=status, body=body)

            self._metrics.record_failure(ErrorClass.UPSTREAM_UNAVAILABLE)
            log.warning("upstream_request_failed", status_code=status)
            msg = f"Upstream request failed ({status}): {body}"
            raise UpstreamUnavailable(msg, status_code=status, body=body)

        if last_status == HTTP_STATUS_UNAUTHORIZED:
            self._metrics.record_failure(ErrorClass.UPSTREAM_AUTH)
            log.warning("upstream_auth_exhausted", attempts=self._policy.max_attempts)
            msg = (
                f"Upstream rejected credentials after "
                f"{self._policy.max_attempts} attempts"
            )
            raise UpstreamAuthError(msg, details={"status_code": last_status})

        self._metrics.record_failure(ErrorClass.UPSTREAM_RATE_LIMITED)
        log.warning(
            "upstream_rate_limit_exhausted", attempts=self._policy.max_attempts
        )
        msg = f"Upstream rate limited after {self._policy.max_attempts} attempts"
        raise UpstreamRateLimitError(msg, retry_after=last_delay)

    def _send(
        self,
        request: UpstreamRequest,
        url: str,
        attempt: int,
        log: structlog.stdlib.BoundLogger,
    ) -> httpx.Response:
        """Send a single attempt with a bearer token attached."""
        headers = {
            "Authorization": f"Bearer {self._tokens.get_token()}",
            "Accept": "application/json",
            "User-Agent": self._user_agent,
        }
        start_ns = time.perf_counter_ns()

        try:
            response = self._http.request(
                request.method, url, params=request.params, headers=headers
            )
        except httpx.HTTPError as exc:
            self._metrics.record_failure(ErrorClass.UPSTREAM_UNAVAILABLE)
            log.warning(
                "upstream_network_error",
                attempt=attempt,
                error=str(exc),
                headers=redact_headers(headers),
            )
            msg = f"Upstream request failed: {exc}"
            raise UpstreamUnavailable(msg) from exc

        duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
        self._metrics.record_request(response.status_code, duration_ms)
        log.debug(
            "upstream_request_complete",
            attempt=attempt,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )
        return response
