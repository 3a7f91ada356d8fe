"""Local fixed-window rate limiting for proxy calls."""

from showsync.ratelimit.limiter import RateLimitDecision, RateLimiter
from showsync.ratelimit.policy import (
    IdentityClass,
    RateLimitPolicy,
    RateLimitPolicyTable,
    classify_identity,
)


__all__ = [
    "IdentityClass",
    "RateLimitDecision",
    "RateLimitPolicy",
    "RateLimitPolicyTable",
    "RateLimiter",
    "classify_identity",
]
