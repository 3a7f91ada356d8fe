"""Unit tests for the retrying upstream client."""

from collections.abc import Generator

import httpx
import pytest

from showsync.errors import (
    NotFound,
    UpstreamAuthError,
    UpstreamRateLimitError,
    UpstreamUnavailable,
)
from showsync.upstream.metrics import UpstreamMetrics
from showsync.upstream.models import RetryPolicy, UpstreamRequest, parse_retry_after
from tests.helpers.time import FakeClock, FakeSleeper
from tests.helpers.upstream import CannedResponse, UpstreamStub, build_fetcher


@pytest.fixture(autouse=True)
def reset_metrics() -> Generator[None]:
    """Reset upstream metrics around each test."""
    UpstreamMetrics.reset()
    yield
    UpstreamMetrics.reset()


@pytest.fixture
def stub() -> UpstreamStub:
    """Create an upstream stub."""
    return UpstreamStub()


@pytest.fixture
def sleeper() -> FakeSleeper:
    """Create a recording sleeper."""
    return FakeSleeper()


def execute(stub: UpstreamStub, sleeper: FakeSleeper, path: str = "/shows/s1"):
    _, client, _ = build_fetcher(stub, FakeClock(), sleeper)
    return client.execute(UpstreamRequest(path=path, params={"market": "US"}))


class TestRetryPolicy:
    """Tests for 429 delay computation."""

    def test_retry_after_header_wins(self) -> None:
        """A positive numeric Retry-After is used as-is."""
        assert RetryPolicy().rate_limit_delay("5", attempt=0) == 5.0

    def test_exponential_fallback(self) -> None:
        """Without a header the delay is 2^(attempt+1)."""
        policy = RetryPolicy()

        assert policy.rate_limit_delay(None, attempt=0) == 2.0
        assert policy.rate_limit_delay(None, attempt=1) == 4.0
        assert policy.rate_limit_delay("0", attempt=2) == 8.0

    def test_delay_is_capped(self) -> None:
        """Large Retry-After values are capped at 60 seconds."""
        assert RetryPolicy().rate_limit_delay("3600", attempt=0) == 60.0

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("7", 7.0), (" 1.5 ", 1.5), ("-3", None), ("soon", None), (None, None)],
    )
    def test_parse_retry_after(self, value: str | None, expected: float | None) -> None:
        """Only positive numbers are usable Retry-After values."""
        assert parse_retry_after(value) == expected


class TestSuccess:
    """Tests for the happy path."""

    def test_attaches_bearer_token(
        self, stub: UpstreamStub, sleeper: FakeSleeper
    ) -> None:
        """Requests carry the current bearer token and query params."""
        stub.add_json("/shows/s1", {"id": "s1"})

        response = execute(stub, sleeper)

        assert response.status_code == 200
        request = stub.calls("/shows/s1")[0]
        assert request.headers["authorization"] == "Bearer token-1"
        assert request.url.params["market"] == "US"
        assert sleeper.calls == []


class TestRateLimitRetry:
    """Tests for 429 handling."""

    def test_honors_retry_after(self, stub: UpstreamStub, sleeper: FakeSleeper) -> None:
        """Retry-After: 5 delays the next attempt by at least 5 seconds."""
        stub.add(
            "/shows/s1",
            CannedResponse(status_code=429, headers={"Retry-After": "5"}),
            CannedResponse(json_body={"id": "s1"}),
        )

        response = execute(stub, sleeper)

        assert response.status_code == 200
        assert sleeper.calls == [5.0]
        assert len(stub.calls("/shows/s1")) == 2

    def test_exponential_delay_without_header(
        self, stub: UpstreamStub, sleeper: FakeSleeper
    ) -> None:
        """Without Retry-After the delays are 2 then 4 seconds."""
        stub.add(
            "/shows/s1",
            CannedResponse(status_code=429),
            CannedResponse(status_code=429),
            CannedResponse(json_body={"id": "s1"}),
        )

        execute(stub, sleeper)

        assert sleeper.calls == [2.0, 4.0]

    def test_exhaustion_stops_after_three_requests(
        self, stub: UpstreamStub, sleeper: FakeSleeper
    ) -> None:
        """Three 429s raise UpstreamRateLimitError and send no 4th request."""
        stub.add_status("/shows/s1", 429)

        with pytest.raises(UpstreamRateLimitError):
            execute(stub, sleeper)

        assert len(stub.calls("/shows/s1")) == 3
        # No sleep after the final attempt
        assert sleeper.calls == [2.0, 4.0]
        metrics = UpstreamMetrics.get_instance()
        assert metrics.http_retry_total == {"rate_limited": 2}


class TestAuthRetry:
    """Tests for 401 handling."""

    def test_refreshes_token_after_401(
        self, stub: UpstreamStub, sleeper: FakeSleeper
    ) -> None:
        """A 401 invalidates the token and retries with a fresh one."""
        stub.add(
            "/shows/s1",
            CannedResponse(status_code=401),
            CannedResponse(json_body={"id": "s1"}),
        )

        response = execute(stub, sleeper)

        assert response.status_code == 200
        calls = stub.calls("/shows/s1")
        assert calls[0].headers["authorization"] == "Bearer token-1"
        assert calls[1].headers["authorization"] == "Bearer token-2"
        assert sleeper.calls == []

    def test_auth_exhaustion(self, stub: UpstreamStub, sleeper: FakeSleeper) -> None:
        """Persistent 401s raise UpstreamAuthError after three attempts."""
        stub.add_status("/shows/s1", 401)

        with pytest.raises(UpstreamAuthError):
            execute(stub, sleeper)

        assert len(stub.calls("/shows/s1")) == 3
        assert len(stub.token_requests) == 3


class TestTerminalFailures:
    """Tests for statuses that are not retried."""

    def test_not_found(self, stub: UpstreamStub, sleeper: FakeSleeper) -> None:
        """A 404 raises NotFound without retrying."""
        with pytest.raises(NotFound) as exc_info:
            execute(stub, sleeper, path="/shows/missing")

        assert exc_info.value.status_code == 404
        assert len(stub.calls("/shows/missing")) == 1

    def test_server_error_carries_body(
        self, stub: UpstreamStub, sleeper: FakeSleeper
    ) -> None:
        """Other non-2xx statuses raise UpstreamUnavailable with the body."""
        stub.add("/shows/s1", CannedResponse(status_code=502, text="bad gateway"))

        with pytest.raises(UpstreamUnavailable) as exc_info:
            execute(stub, sleeper)

        assert exc_info.value.status_code == 502
        assert exc_info.value.body == "bad gateway"
        assert len(stub.calls("/shows/s1")) == 1

    def test_transport_error(self, stub: UpstreamStub, sleeper: FakeSleeper) -> None:
        """Network failures raise UpstreamUnavailable with status 0."""
        stub.raise_on["/shows/s1"] = httpx.ConnectError("refused")

        with pytest.raises(UpstreamUnavailable) as exc_info:
            execute(stub, sleeper)

        assert exc_info.value.status_code == 0

    def test_invalid_json(self, stub: UpstreamStub, sleeper: FakeSleeper) -> None:
        """get_json rejects bodies that are not JSON."""
        stub.add("/shows/s1", CannedResponse(text="<html>"))
        _, client, _ = build_fetcher(stub, FakeClock(), sleeper)

        with pytest.raises(UpstreamUnavailable, match="invalid JSON"):
            client.get_json("/shows/s1", operation="getCollection")
