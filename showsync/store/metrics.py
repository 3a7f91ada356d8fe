"""Metrics collection for the persistent store."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class StoreMetrics:
    """Metrics for persistent store operations.

    Attributes:
        db_puts_total: Unconditional puts.
        db_conditional_updates_total: Successful conditional updates.
        db_conditional_failures_total: Conditional updates on missing keys.
        db_batch_writes_total: Batch write calls.
        db_batch_items_total: Items submitted through batch writes.
        db_increments_total: Atomic increments.
        db_tx_duration_ms: Cumulative transaction duration in milliseconds.
        db_tx_count: Number of transactions.
    """

    db_puts_total: int = 0
    db_conditional_updates_total: int = 0
    db_conditional_failures_total: int = 0
    db_batch_writes_total: int = 0
    db_batch_items_total: int = 0
    db_increments_total: int = 0
    db_tx_duration_ms: float = 0.0
    db_tx_count: int = 0

    _instance: ClassVar["StoreMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "StoreMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_put(self) -> None:
        """Record an unconditional put."""
        self.db_puts_total += 1

    def record_conditional_update(self, applied: bool) -> None:
        """Record a conditional update outcome.

        Args:
            applied: Whether the target existed and was updated.
        """
        if applied:
            self.db_conditional_updates_total += 1
        else:
            self.db_conditional_failures_total += 1

    def record_batch_write(self, item_count: int) -> None:
        """Record a batch write call.

        Args:
            item_count: Number of items in the batch.
        """
        self.db_batch_writes_total += 1
        self.db_batch_items_total += item_count

    def record_increment(self) -> None:
        """Record an atomic increment."""
        self.db_increments_total += 1

    def record_tx_duration(self, duration_ms: float) -> None:
        """Record transaction duration.

        Args:
            duration_ms: Duration in milliseconds.
        """
        self.db_tx_duration_ms += duration_ms
        self.db_tx_count += 1

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "db_puts_total": self.db_puts_total,
            "db_conditional_updates_total": self.db_conditional_updates_total,
            "db_conditional_failures_total": self.db_conditional_failures_total,
            "db_batch_writes_total": self.db_batch_writes_total,
            "db_batch_items_total": self.db_batch_items_total,
            "db_increments_total": self.db_increments_total,
            "db_tx_duration_ms": self.db_tx_duration_ms,
            "db_tx_count": self.db_tx_count,
        }


@dataclass
class TransactionContext:
    """Context for a single transaction with timing.

    Attributes:
        tx_id: Unique transaction identifier.
        start_time_ns: Start time in nanoseconds.
        operation: The operation being performed.
    """

    tx_id: str
    start_time_ns: int
    operation: str
    affected_rows: int = field(default=0)

    def add_affected_rows(self, rows: int) -> None:
        """Add to the affected row count.

        Args:
            rows: Number of rows affected.
        """
        self.affected_rows += rows
