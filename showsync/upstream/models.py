"""Data models for the upstream HTTP layer."""

from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

from showsync.upstream.constants import (
    MAX_ATTEMPTS,
    MAX_RETRY_AFTER_SECONDS,
    TOKEN_SAFETY_MARGIN_SECONDS,
)


class Token(BaseModel):
    """Bearer credential for the upstream API.

    Held in process memory only; never persisted.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    value: Annotated[str, Field(min_length=1)]
    expires_at: datetime

    def is_usable(
        self, now: datetime, margin_seconds: int = TOKEN_SAFETY_MARGIN_SECONDS
    ) -> bool:
        """Check whether the token has more than ``margin_seconds`` left.

        Args:
            now: Current time.
            margin_seconds: Required remaining lifetime.

        Returns:
            True if the token may be attached to a request.
        """
        return (self.expires_at - now).total_seconds() > margin_seconds


class UpstreamRequest(BaseModel):
    """An outbound request against the upstream catalog API."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    method: str = "GET"
    path: Annotated[str, Field(min_length=1, description="Path relative to base URL")]
    params: dict[str, str] = Field(default_factory=dict)
    operation: str = Field(default="upstream", description="Label for logs/metrics")


class RetryPolicy(BaseModel):
    """Configuration for retry behavior.

    401 responses invalidate the token and retry; 429 responses sleep for
    ``Retry-After`` seconds (or ``2 ** (attempt + 1)``) and retry.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_attempts: Annotated[int, Field(ge=1, le=10)] = MAX_ATTEMPTS
    max_retry_after_seconds: Annotated[float, Field(ge=0, le=3600)] = float(
        MAX_RETRY_AFTER_SECONDS
    )

    def rate_limit_delay(self, retry_after: Any, attempt: int) -> float:
        """Compute the delay before retrying a 429 response.

        Args:
            retry_after: Raw ``Retry-After`` header value, if any.
            attempt: Current attempt number (0-indexed).

        Returns:
            Delay in seconds.
        """
        delay = parse_retry_after(retry_after)
        if delay is None:
            delay = float(2 ** (attempt + 1))
        return min(delay, self.max_retry_after_seconds)


def parse_retry_after(value: Any) -> float | None:
    """Parse a numeric ``Retry-After`` header value.

    HTTP-date values and non-positive numbers are treated as absent.

    Args:
        value: Header value.

    Returns:
        Seconds to wait, or None if not usable.
    """
    if value is None:
        return None
    try:
        seconds = float(str(value).strip())
    except ValueError:
        return None
    if seconds != seconds or seconds <= 0:  # NaN or non-positive
        return None
    return seconds
