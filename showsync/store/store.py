"""SQLite implementation of the persistent store."""

import json
import re
import sqlite3
import threading
import time
import uuid
from collections.abc import Callable, Generator, Mapping
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import structlog

from showsync.errors import ConditionalCheckFailed, StoreConnectionError
from showsync.store.keys import StoreKey
from showsync.store.metrics import StoreMetrics, TransactionContext
from showsync.store.migrations import CURRENT_VERSION, MigrationManager
from showsync.store.models import Page, StoreItem
from showsync.store.protocols import MAX_BATCH_WRITE_ITEMS


logger = structlog.get_logger()

_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


def _dumps(value: Any) -> str:
    return json.dumps(value, default=_json_default, separators=(",", ":"))


def _field_path(field: str) -> str:
    if not _FIELD_NAME.match(field):
        msg = f"Invalid field name: {field!r}"
        raise ValueError(msg)
    return f"$.{field}"


def _require_key(item: Mapping[str, Any]) -> StoreKey:
    pk = item.get("pk")
    sk = item.get("sk")
    if not isinstance(pk, str) or not pk or not isinstance(sk, str) or not sk:
        msg = "Store items require non-empty string 'pk' and 'sk' attributes"
        raise ValueError(msg)
    return StoreKey(pk=pk, sk=sk)


class SqliteStore:
    """SQLite record store with DynamoDB-style primitives.

    Every record is a JSON body under a ``(pk, sk)`` primary key. Uses WAL
    mode and applies schema migrations on connect. A connection-level lock
    serializes statements so one store can be shared between threads.
    """

    def __init__(self, db_path: Path | str, run_id: str | None = None) -> None:
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file.
            run_id: Optional run ID for logging context.
        """
        self._db_path = Path(db_path) if isinstance(db_path, str) else db_path
        self._run_id = run_id or str(uuid.uuid4())
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._metrics = StoreMetrics.get_instance()
        self._log = logger.bind(
            component="store",
            run_id=self._run_id,
            db_path=str(self._db_path),
        )

    @property
    def db_path(self) -> Path:
        """Get the database path."""
        return self._db_path

    @property
    def is_connected(self) -> bool:
        """Check if connected to database."""
        return self._conn is not None

    def connect(self) -> None:
        """Open connection to database and apply migrations.

        Creates the database file and parent directories if they don't exist.
        """
        if self._conn is not None:
            return

        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._conn.execute("PRAGMA busy_timeout=5000")

        migration_mgr = MigrationManager(self._conn)
        old_version = migration_mgr.get_current_version()
        applied = migration_mgr.apply_migrations()

        self._log.info(
            "database_connected",
            old_version=old_version,
            new_version=CURRENT_VERSION,
            migrations_applied=applied,
        )

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self._log.info("database_closed")

    def __enter__(self) -> "SqliteStore":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()

    def _ensure_connected(self) -> sqlite3.Connection:
        """Ensure database is connected.

        Raises:
            StoreConnectionError: If not connected.
        """
        if self._conn is None:
            raise StoreConnectionError("Database not connected. Call connect() first.")
        return self._conn

    @contextmanager
    def _transaction(self, operation: str) -> Generator[TransactionContext]:
        """Context manager for transactions with timing and logging.

        Args:
            operation: Name of the operation for logging.

        Yields:
            Transaction context with timing information.
        """
        with self._lock:
            conn = self._ensure_connected()
            tx_id = str(uuid.uuid4())[:8]
            start_ns = time.perf_counter_ns()
            ctx = TransactionContext(
                tx_id=tx_id, start_time_ns=start_ns, operation=operation
            )

            try:
                yield ctx
                conn.commit()
            except Exception:
                conn.rollback()
                self._log.error(
                    "transaction_failed",
                    tx_id=tx_id,
                    op=operation,
                    duration_ms=round((time.perf_counter_ns() - start_ns) / 1e6, 2),
                )
                raise

            duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
            self._metrics.record_tx_duration(duration_ms)
            self._log.debug(
                "transaction_complete",
                tx_id=tx_id,
                op=operation,
                affected_rows=ctx.affected_rows,
                duration_ms=round(duration_ms, 2),
            )

    # ===== Single-item operations =====

    def get(self, key: StoreKey) -> StoreItem | None:
        """Get an item by key.

        Args:
            key: The key to look up.

        Returns:
            The item, or None if not found.
        """
        with self._lock:
            conn = self._ensure_connected()
            row = conn.execute(
                "SELECT body FROM records WHERE pk = ? AND sk = ?",
                (key.pk, key.sk),
            ).fetchone()

        if row is None:
            return None
        item: StoreItem = json.loads(row["body"])
        return item

    def _upsert_row(self, conn: sqlite3.Connection, item: StoreItem) -> None:
        key = _require_key(item)
        conn.execute(
            """
            INSERT INTO records (pk, sk, data_type, body, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(pk, sk) DO UPDATE SET
                data_type = excluded.data_type,
                body = excluded.body,
                updated_at = excluded.updated_at
            """,
            (
                key.pk,
                key.sk,
                item.get("data_type"),
                _dumps(item),
                datetime.now(UTC).isoformat(),
            ),
        )

    def put(self, item: StoreItem) -> None:
        """Insert or replace an item (last writer wins).

        Args:
            item: Item carrying ``pk`` and ``sk`` attributes.
        """
        with self._transaction("put") as ctx:
            self._upsert_row(self._ensure_connected(), item)
            ctx.add_affected_rows(1)
        self._metrics.record_put()

    def conditional_update(
        self, key: StoreKey, changes: Mapping[str, Any]
    ) -> StoreItem:
        """Merge attribute changes into an existing item.

        The existence check and the write are one UPDATE statement, so an
        item deleted concurrently is never resurrected.

        Args:
            key: Key of the item to update.
            changes: Attribute values to set.

        Returns:
            The updated item.

        Raises:
            ConditionalCheckFailed: If no item exists under ``key``.
        """
        if not changes:
            msg = "conditional_update requires at least one change"
            raise ValueError(msg)

        set_args: list[str] = []
        params: list[Any] = []
        for field, value in changes.items():
            if field in ("pk", "sk"):
                msg = "Key attributes cannot be updated"
                raise ValueError(msg)
            set_args.append("?, json(?)")
            params.extend([_field_path(field), _dumps(value)])

        data_type = changes.get("data_type")

        with self._transaction("conditional_update") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                f"""
                UPDATE records
                SET body = json_set(body, {", ".join(set_args)}),
                    data_type = coalesce(?, data_type),
                    updated_at = ?
                WHERE pk = ? AND sk = ?
                """,  # noqa: S608
                (
                    *params,
                    data_type,
                    datetime.now(UTC).isoformat(),
                    key.pk,
                    key.sk,
                ),
            )
            ctx.add_affected_rows(cursor.rowcount)
            row = conn.execute(
                "SELECT body FROM records WHERE pk = ? AND sk = ?",
                (key.pk, key.sk),
            ).fetchone()

        if cursor.rowcount == 0 or row is None:
            self._metrics.record_conditional_update(applied=False)
            raise ConditionalCheckFailed(key.pk, key.sk)

        self._metrics.record_conditional_update(applied=True)
        updated: StoreItem = json.loads(row["body"])
        return updated

    def atomic_increment(
        self,
        key: StoreKey,
        field: str,
        amount: int = 1,
        defaults: Mapping[str, Any] | None = None,
    ) -> int:
        """Atomically add to a numeric field, creating the item if needed.

        Implemented as a single ``INSERT ... ON CONFLICT DO UPDATE ...
        RETURNING`` statement; there is no read-modify-write window.

        Args:
            key: Key of the counter item.
            field: Name of the numeric attribute.
            amount: Amount to add.
            defaults: Attributes set only when the item is created.

        Returns:
            The value of the field after the increment.
        """
        path = _field_path(field)
        initial: StoreItem = dict(defaults or {})
        initial.update({"pk": key.pk, "sk": key.sk, field: amount})

        with self._transaction("atomic_increment") as ctx:
            conn = self._ensure_connected()
            row = conn.execute(
                """
                INSERT INTO records (pk, sk, data_type, body, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(pk, sk) DO UPDATE SET
                    body = json_set(
                        records.body, ?,
                        coalesce(json_extract(records.body, ?), 0) + ?
                    ),
                    updated_at = excluded.updated_at
                RETURNING json_extract(body, ?) AS value
                """,
                (
                    key.pk,
                    key.sk,
                    initial.get("data_type"),
                    _dumps(initial),
                    datetime.now(UTC).isoformat(),
                    path,
                    path,
                    amount,
                    path,
                ),
            ).fetchone()
            ctx.add_affected_rows(1)

        self._metrics.record_increment()
        return int(row["value"])

    # ===== Batch and paginated operations =====

    def batch_write(self, items: list[StoreItem]) -> list[StoreItem]:
        """Write a batch of items in one transaction.

        SQLite processes every item or fails the whole batch, so the
        unprocessed list is always empty on return.

        Args:
            items: Up to 25 items.

        Returns:
            Items that were not processed.

        Raises:
            ValueError: If more than 25 items are supplied.
        """
        if len(items) > MAX_BATCH_WRITE_ITEMS:
            msg = (
                f"batch_write accepts at most {MAX_BATCH_WRITE_ITEMS} items, "
                f"got {len(items)}"
            )
            raise ValueError(msg)
        if not items:
            return []

        with self._transaction("batch_write") as ctx:
            conn = self._ensure_connected()
            for item in items:
                self._upsert_row(conn, item)
            ctx.add_affected_rows(len(items))

        self._metrics.record_batch_write(len(items))
        return []

    def query_by_prefix(
        self,
        pk: str,
        sk_prefix: str,
        limit: int = 100,
        start_key: StoreKey | None = None,
    ) -> Page:
        """Read one partition's items whose sort key starts with a prefix.

        Args:
            pk: Partition key.
            sk_prefix: Sort key prefix.
            limit: Maximum items per page.
            start_key: Key to resume after (from a previous page).

        Returns:
            Page of items ordered by sort key.
        """
        after_sk = start_key.sk if start_key is not None else ""
        with self._lock:
            conn = self._ensure_connected()
            rows = conn.execute(
                """
                SELECT pk, sk, body FROM records
                WHERE pk = ? AND substr(sk, 1, length(?)) = ? AND sk > ?
                ORDER BY sk
                LIMIT ?
                """,
                (pk, sk_prefix, sk_prefix, after_sk, limit + 1),
            ).fetchall()

        return self._to_page(rows, limit, lambda _item: True)

    def scan_with_filter(
        self,
        predicate: Callable[[StoreItem], bool],
        limit: int = 100,
        start_key: StoreKey | None = None,
    ) -> Page:
        """Scan the table in key order, keeping items matching ``predicate``.

        Like a DynamoDB scan, ``limit`` bounds the rows read, not the rows
        returned, so a page may hold fewer matches than ``limit``.

        Args:
            predicate: Filter applied to each item read.
            limit: Maximum rows read per page.
            start_key: Key to resume after (from a previous page).

        Returns:
            Page of matching items.
        """
        after_pk = start_key.pk if start_key is not None else ""
        after_sk = start_key.sk if start_key is not None else ""
        with self._lock:
            conn = self._ensure_connected()
            rows = conn.execute(
                """
                SELECT pk, sk, body FROM records
                WHERE pk > ? OR (pk = ? AND sk > ?)
                ORDER BY pk, sk
                LIMIT ?
                """,
                (after_pk, after_pk, after_sk, limit + 1),
            ).fetchall()

        return self._to_page(rows, limit, predicate)

    def _to_page(
        self,
        rows: list[sqlite3.Row],
        limit: int,
        predicate: Callable[[StoreItem], bool],
    ) -> Page:
        has_more = len(rows) > limit
        read = rows[:limit]
        decoded = (json.loads(row["body"]) for row in read)
        items = [item for item in decoded if predicate(item)]
        last_key: StoreKey | None = None
        if has_more and read:
            last_key = StoreKey(pk=read[-1]["pk"], sk=read[-1]["sk"])
        return Page(items=items, last_key=last_key)

    # ===== Stats =====

    def get_stats(self) -> dict[str, int]:
        """Get record counts grouped by data type.

        Returns:
            Dictionary mapping data type to row count.
        """
        with self._lock:
            conn = self._ensure_connected()
            rows = conn.execute(
                """
                SELECT coalesce(data_type, 'unknown') AS data_type, COUNT(*) AS n
                FROM records GROUP BY data_type
                """
            ).fetchall()
        return {row["data_type"]: row["n"] for row in rows}

    def get_schema_version(self) -> int:
        """Get current schema version."""
        with self._lock:
            return MigrationManager(self._ensure_connected()).get_current_version()
