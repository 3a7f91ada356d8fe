"""Fixed-window rate limiter backed by the store's atomic increment."""

from dataclasses import dataclass
from datetime import datetime

import structlog

from showsync.cache.metrics import CacheMetrics
from showsync.clock import Clock, utc_now
from showsync.errors import RateLimitExceeded
from showsync.ratelimit.policy import (
    ANONYMOUS_IDENTITY,
    RateLimitPolicyTable,
    classify_identity,
)
from showsync.store.models import RateLimitCounter, from_epoch_seconds
from showsync.store.protocols import PersistentStore


logger = structlog.get_logger()


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of an admitted call.

    Attributes:
        identity_key: Identity the counter belongs to.
        operation: Operation that was counted.
        count: Counter value after this call.
        limit: Maximum calls allowed in the window.
        window_bucket: Window the call was counted in.
        reset_at: Start of the next window.
    """

    identity_key: str
    operation: str
    count: int
    limit: int
    window_bucket: int
    reset_at: datetime

    @property
    def remaining(self) -> int:
        """Calls still allowed in the current window."""
        return max(0, self.limit - self.count)


class RateLimiter:
    """Admission control per (identity, operation, window).

    Each call increments the counter of the current window with a single
    atomic store operation. The call that takes the counter past the
    ceiling is itself rejected, so exactly ``max_requests`` calls succeed
    per window. Counters expire one window after their window closes.
    """

    def __init__(
        self,
        store: PersistentStore,
        policies: RateLimitPolicyTable | None = None,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Store holding the counters.
            policies: Policy table (defaults apply when omitted).
            clock: Time source.
        """
        self._store = store
        self._policies = policies or RateLimitPolicyTable()
        self._clock = clock
        self._metrics = CacheMetrics.get_instance()
        self._log = logger.bind(component="ratelimit")

    def check(self, identity_key: str | None, operation: str) -> RateLimitDecision:
        """Count a call and reject it if the window ceiling is passed.

        Args:
            identity_key: Caller identity, None for anonymous callers.
            operation: Canonical operation name.

        Returns:
            Decision for the admitted call.

        Raises:
            RateLimitExceeded: If the post-increment count exceeds the ceiling.
        """
        policy = self._policies.resolve(classify_identity(identity_key), operation)
        identity = identity_key if identity_key is not None else ANONYMOUS_IDENTITY

        now_seconds = self._clock().timestamp()
        window = policy.window_seconds
        bucket = int(now_seconds // window)
        window_end = (bucket + 1) * window

        counter = RateLimitCounter(
            identity_key=identity,
            operation=operation,
            window_bucket=bucket,
            count=0,
            expires_at=from_epoch_seconds(window_end + window),
        )
        count = self._store.atomic_increment(
            counter.key, "count", 1, defaults=counter.to_item()
        )

        if count > policy.max_requests:
            retry_after = max(1, int(window_end - now_seconds))
            self._metrics.record_rate_limit_rejection(operation)
            self._log.info(
                "rate_limit_exceeded",
                identity_key=identity,
                operation=operation,
                count=count,
                limit=policy.max_requests,
                retry_after_seconds=retry_after,
            )
            raise RateLimitExceeded(
                identity_key=identity,
                operation=operation,
                limit=policy.max_requests,
                retry_after_seconds=retry_after,
            )

        return RateLimitDecision(
            identity_key=identity,
            operation=operation,
            count=count,
            limit=policy.max_requests,
            window_bucket=bucket,
            reset_at=from_epoch_seconds(window_end),
        )
