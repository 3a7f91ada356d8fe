"""Metrics collection for the proxy path."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class CacheMetrics:
    """Metrics for read-through caching and local admission control.

    Singleton class that tracks cache hits, misses and bypasses per
    operation, and rate-limit rejections.
    """

    cache_hits_total: dict[str, int] = field(default_factory=dict)
    cache_misses_total: dict[str, int] = field(default_factory=dict)
    cache_bypass_total: dict[str, int] = field(default_factory=dict)
    rate_limit_rejections_total: dict[str, int] = field(default_factory=dict)

    _instance: ClassVar["CacheMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "CacheMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    @staticmethod
    def _bump(counter: dict[str, int], operation: str) -> None:
        counter[operation] = counter.get(operation, 0) + 1

    def record_hit(self, operation: str) -> None:
        """Record a value served from the cache."""
        self._bump(self.cache_hits_total, operation)

    def record_miss(self, operation: str) -> None:
        """Record a value fetched because no fresh entry existed."""
        self._bump(self.cache_misses_total, operation)

    def record_bypass(self, operation: str) -> None:
        """Record a personalized call that skipped the cache."""
        self._bump(self.cache_bypass_total, operation)

    def record_rate_limit_rejection(self, operation: str) -> None:
        """Record a call rejected by the local rate limiter."""
        self._bump(self.rate_limit_rejections_total, operation)

    def to_dict(self) -> dict[str, dict[str, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to per-operation counts.
        """
        return {
            "cache_hits_total": dict(self.cache_hits_total),
            "cache_misses_total": dict(self.cache_misses_total),
            "cache_bypass_total": dict(self.cache_bypass_total),
            "rate_limit_rejections_total": dict(self.rate_limit_rejections_total),
        }
