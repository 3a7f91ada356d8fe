"""Metrics collection for the upstream HTTP layer."""

from dataclasses import dataclass, field
from typing import ClassVar

from showsync.errors import ErrorClass


@dataclass
class UpstreamMetrics:
    """Metrics for upstream API calls.

    Singleton class that tracks request counts by status, retries by
    reason, terminal failures, and token refreshes.
    """

    http_requests_total: dict[int, int] = field(default_factory=dict)
    http_retry_total: dict[str, int] = field(default_factory=dict)
    http_failures_total: dict[str, int] = field(default_factory=dict)
    http_duration_ms_total: float = 0.0
    http_request_count: int = 0
    token_refresh_total: int = 0
    token_invalidations_total: int = 0

    _instance: ClassVar["UpstreamMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "UpstreamMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_request(self, status_code: int, duration_ms: float) -> None:
        """Record a completed HTTP request.

        Args:
            status_code: HTTP status code.
            duration_ms: Request duration in milliseconds.
        """
        self.http_requests_total[status_code] = (
            self.http_requests_total.get(status_code, 0) + 1
        )
        self.http_request_count += 1
        self.http_duration_ms_total += duration_ms

    def record_retry(self, reason: str) -> None:
        """Record a retry attempt.

        Args:
            reason: Why the request is retried (``auth`` or ``rate_limited``).
        """
        self.http_retry_total[reason] = self.http_retry_total.get(reason, 0) + 1

    def record_failure(self, error_class: ErrorClass) -> None:
        """Record a terminal upstream failure.

        Args:
            error_class: Classification of the failure.
        """
        key = error_class.value
        self.http_failures_total[key] = self.http_failures_total.get(key, 0) + 1

    def record_token_refresh(self) -> None:
        """Record a token exchange against the token endpoint."""
        self.token_refresh_total += 1

    def record_token_invalidation(self) -> None:
        """Record a token invalidated after a 401."""
        self.token_invalidations_total += 1

    def to_dict(self) -> dict[str, int | float | dict[str, int] | dict[int, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "http_requests_total": dict(self.http_requests_total),
            "http_retry_total": dict(self.http_retry_total),
            "http_failures_total": dict(self.http_failures_total),
            "http_duration_ms_total": self.http_duration_ms_total,
            "http_request_count": self.http_request_count,
            "token_refresh_total": self.token_refresh_total,
            "token_invalidations_total": self.token_invalidations_total,
        }
