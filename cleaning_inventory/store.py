"""
SQLite-backed store for cleaning inventory readings.

The store only knows *how* to persist rows; which row is current for a device
is decided by `aggregation`. Rows are returned as plain dicts so that a single
corrupted row reaches the aggregation step (which skips it) instead of failing
the whole query.

Observers registered with `subscribe` are notified after every committed
insert or delete, mirroring a table-level change feed.
"""

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable

from . import settings
from .schemas import ChangeEvent, InventoryRecord

logger = logging.getLogger(__name__)

ORDERABLE_COLUMNS = ("id", "device", "date", "created_at", "reported_by")

ChangeCallback = Callable[[ChangeEvent], None]


class StoreError(Exception):
    """Raised when the underlying database cannot serve a query or a write."""


class InventoryStore:
    """CRUD wrapper for the readings table plus a change-notification hook."""

    def __init__(
        self, db_path: str | Path = settings.DB_PATH, table: str = settings.TABLE_NAME
    ):
        self.table = table
        try:
            self.conn = sqlite3.connect(str(db_path))
        except sqlite3.Error as e:
            raise StoreError(f"cannot open database {db_path}: {e}") from e
        self.conn.row_factory = sqlite3.Row
        self._subscribers: dict[str, list[ChangeCallback]] = {}
        self._ensure_schema()

    # --------------------------------------------------------------
    # Schema
    # --------------------------------------------------------------
    def _ensure_schema(self) -> None:
        with self.conn:
            self.conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    id          INTEGER PRIMARY KEY AUTOINCREMENT,
                    device      TEXT NOT NULL,
                    products    TEXT NOT NULL DEFAULT '[]',
                    reported_by TEXT NOT NULL DEFAULT '',
                    date        TEXT NOT NULL DEFAULT '',
                    created_at  TEXT NOT NULL
                );
                """
            )
            self.conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{self.table}_device_created "
                f"ON {self.table} (device, created_at);"
            )

    # --------------------------------------------------------------
    # Helper: Row -> dict
    # --------------------------------------------------------------
    @staticmethod
    def _row_to_dict(row: sqlite3.Row) -> dict[str, Any]:
        data = {k: row[k] for k in row.keys()}
        try:
            data["products"] = json.loads(data["products"])
        except (TypeError, ValueError):
            # Left as raw text; the aggregation step logs and skips it.
            logger.warning(f"Row {data.get('id')} has unreadable products payload.")
        return data

    @staticmethod
    def _order_clause(order_by: str, descending: bool) -> str:
        if order_by not in ORDERABLE_COLUMNS:
            raise ValueError(f"cannot order by '{order_by}'")
        direction = "DESC" if descending else "ASC"
        # id breaks ties between rows created within the same instant
        return f"ORDER BY {order_by} {direction}, id {direction}"

    def _query(self, sql: str, params: Iterable[Any] = ()) -> list[dict[str, Any]]:
        try:
            cur = self.conn.execute(sql, tuple(params))
            return [self._row_to_dict(r) for r in cur.fetchall()]
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e

    # ==============================================================
    #                     READS
    # ==============================================================

    def select_all(
        self, order_by: str = "created_at", descending: bool = True
    ) -> list[dict[str, Any]]:
        order = self._order_clause(order_by, descending)
        return self._query(f"SELECT * FROM {self.table} {order};")

    def select_by_devices(
        self,
        devices: Iterable[str],
        order_by: str = "created_at",
        descending: bool = True,
    ) -> list[dict[str, Any]]:
        devices = list(devices)
        if not devices:
            return []
        placeholders = ", ".join("?" for _ in devices)
        order = self._order_clause(order_by, descending)
        return self._query(
            f"SELECT * FROM {self.table} WHERE device IN ({placeholders}) {order};",
            devices,
        )

    def latest_for_device(self, device: str) -> dict[str, Any] | None:
        rows = self._query(
            f"SELECT * FROM {self.table} WHERE device = ? "
            f"ORDER BY created_at DESC, id DESC LIMIT 1;",
            (device,),
        )
        return rows[0] if rows else None

    def count(self, device: str | None = None) -> int:
        try:
            if device is None:
                cur = self.conn.execute(f"SELECT COUNT(*) FROM {self.table};")
            else:
                cur = self.conn.execute(
                    f"SELECT COUNT(*) FROM {self.table} WHERE device = ?;", (device,)
                )
            return cur.fetchone()[0]
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e

    # ==============================================================
    #                     WRITES
    # ==============================================================

    def insert(
        self, records: InventoryRecord | Iterable[InventoryRecord]
    ) -> list[InventoryRecord]:
        """
        Inserts one or many records in a single transaction and returns them
        with `id` and `created_at` filled in. Either every record lands or none does.
        """
        if isinstance(records, InventoryRecord):
            records = [records]
        records = list(records)

        stored: list[InventoryRecord] = []
        sql = f"""
            INSERT INTO {self.table} (device, products, reported_by, date, created_at)
            VALUES (?, ?, ?, ?, ?);
        """
        try:
            with self.conn:
                for record in records:
                    created_at = record.created_at or datetime.now(timezone.utc)
                    if created_at.tzinfo is None:
                        created_at = created_at.replace(tzinfo=timezone.utc)
                    # Fixed-width UTC text so ORDER BY created_at is chronological
                    created_text = created_at.astimezone(timezone.utc).isoformat(
                        timespec="microseconds"
                    )
                    products = json.dumps(
                        [p.model_dump(by_alias=True) for p in record.products],
                        ensure_ascii=False,
                    )
                    cur = self.conn.execute(
                        sql,
                        (
                            record.device,
                            products,
                            record.reported_by,
                            record.date,
                            created_text,
                        ),
                    )
                    stored.append(
                        record.model_copy(
                            update={"id": cur.lastrowid, "created_at": created_at}
                        )
                    )
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e

        for record in stored:
            self._notify(
                ChangeEvent(
                    table=self.table,
                    event="INSERT",
                    new=record.model_dump(mode="json", by_alias=True),
                )
            )
        return stored

    def delete_all(self) -> int:
        """
        Purges every row. The WHERE clause is always true; it is kept so the
        statement never runs as an unconditional delete.
        """
        old_rows = self.select_all(order_by="id", descending=False)
        try:
            with self.conn:
                cur = self.conn.execute(
                    f"DELETE FROM {self.table} WHERE id IS NOT NULL;"
                )
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e

        for row in old_rows:
            self._notify(ChangeEvent(table=self.table, event="DELETE", old=row))
        logger.info(f"Deleted {cur.rowcount} rows from {self.table}.")
        return cur.rowcount

    # ==============================================================
    #                     CHANGE NOTIFICATIONS
    # ==============================================================

    def subscribe(self, table: str, callback: ChangeCallback) -> Callable[[], None]:
        """Registers `callback` for changes on `table`; returns an unsubscribe function."""
        self._subscribers.setdefault(table, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(table, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def _notify(self, event: ChangeEvent) -> None:
        for callback in list(self._subscribers.get(event.table, [])):
            try:
                callback(event)
            except Exception:
                # An observer failing must not undo or hide a committed write.
                logger.exception(f"Change observer failed for {event.event} on {event.table}")

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "InventoryStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
