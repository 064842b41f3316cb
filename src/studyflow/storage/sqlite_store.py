# src/studyflow/storage/sqlite_store.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import sqlite3
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..core.errors import StoreError
from ..core.ports import Row

logger = logging.getLogger(__name__)

# collection -> {column: declaration}; id/owner_id/created_at/updated_at are implicit.
_COLLECTIONS: dict[str, dict[str, str]] = {
    "tasks": {
        "title": "TEXT NOT NULL DEFAULT ''",
        "description": "TEXT",
        "due_date": "TEXT",
        "priority": "TEXT NOT NULL DEFAULT 'medium'",
        "subject": "TEXT",
        "status": "TEXT NOT NULL DEFAULT 'pending'",
    },
    "sessions": {
        "title": "TEXT NOT NULL DEFAULT ''",
        "description": "TEXT",
        "start_time": "TEXT NOT NULL DEFAULT ''",
        "end_time": "TEXT NOT NULL DEFAULT ''",
        "subject": "TEXT",
        "status": "TEXT NOT NULL DEFAULT 'scheduled'",
        "related_task_id": "TEXT",
    },
}

_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_tasks_owner_due ON tasks(owner_id, due_date)",
    "CREATE INDEX IF NOT EXISTS idx_sessions_owner_start ON sessions(owner_id, start_time)",
)

_ORDERABLE = {"created_at", "updated_at"}

# Values for columns a row leaves out (an explicit None stays NULL).
_DEFAULTS: dict[str, dict[str, Any]] = {
    "tasks": {"title": "", "priority": "medium", "status": "pending"},
    "sessions": {"title": "", "start_time": "", "end_time": "", "status": "scheduled"},
}


def _utc_now_iso() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds")


class SQLiteKeyedStore:
    """
    SQLite implementation of the KeyedStore port.

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each call opens its own SQLite connection (calls run in worker threads)

    Ids are uuid4 hex strings; created_at is stamped here on insert, updated_at
    keeps the caller's value when given (never earlier than the stored one).
    update/delete only touch rows of the given owner; a foreign id reads as missing.
    """

    def __init__(self, db_path: str | Path = "studyflow.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("SQLiteKeyedStore ready db=%s", self._db_path)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            for name, columns in _COLLECTIONS.items():
                decls = ",\n".join(f"{col} {decl}" for col, decl in columns.items())
                cur.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {name} (
                        id TEXT PRIMARY KEY,
                        owner_id TEXT NOT NULL,
                        {decls},
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                    """
                )

                # Migrations (safe): add missing columns.
                cur.execute(f"PRAGMA table_info({name})")
                existing = {row["name"] for row in cur.fetchall()}
                for col, decl in columns.items():
                    if col in existing:
                        continue
                    cur.execute(f"ALTER TABLE {name} ADD COLUMN {col} {decl}")
                    logger.info("SQLiteKeyedStore migration: added column %s.%s", name, col)

            for stmt in _INDEXES:
                cur.execute(stmt)
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _columns(collection: str) -> dict[str, str]:
        try:
            return _COLLECTIONS[collection]
        except KeyError:
            raise StoreError(f"unknown collection: {collection}") from None

    @staticmethod
    def _row_to_dict(row: sqlite3.Row) -> Row:
        return {k: row[k] for k in row.keys()}

    # ---- sync implementations (run in worker threads) ----

    def _select_sync(self, collection: str, owner_id: str, order_by: str, nulls_last: bool) -> list[Row]:
        columns = self._columns(collection)
        if order_by not in columns and order_by not in _ORDERABLE:
            raise StoreError(f"cannot order {collection} by {order_by}")

        nulls = f"({order_by} IS NULL) ASC, " if nulls_last else ""
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                f"SELECT * FROM {collection} WHERE owner_id = ? "
                f"ORDER BY {nulls}{order_by} ASC, created_at ASC",
                (owner_id,),
            )
            return [self._row_to_dict(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def _insert_sync(self, collection: str, rows: Sequence[Row]) -> list[Row]:
        columns = self._columns(collection)
        defaults = _DEFAULTS.get(collection, {})
        names = ["id", "owner_id", *columns, "created_at", "updated_at"]
        placeholders = ", ".join("?" for _ in names)

        now = _utc_now_iso()
        prepared: list[tuple[Any, ...]] = []
        ids: list[str] = []
        for r in rows:
            owner_id = r.get("owner_id")
            if not owner_id:
                raise StoreError(f"{collection} row without owner_id")
            row_id = uuid.uuid4().hex
            ids.append(row_id)
            values = [row_id, owner_id]
            values.extend(r[col] if col in r else defaults.get(col) for col in columns)
            values.extend([now, max(now, str(r.get("updated_at") or now))])
            prepared.append(tuple(values))

        conn = self._get_conn()
        try:
            # One transaction: either every row lands or none does.
            with conn:
                conn.executemany(
                    f"INSERT INTO {collection} ({', '.join(names)}) VALUES ({placeholders})",
                    prepared,
                )
            cur = conn.cursor()
            out: list[Row] = []
            for row_id in ids:
                cur.execute(f"SELECT * FROM {collection} WHERE id = ?", (row_id,))
                out.append(self._row_to_dict(cur.fetchone()))
            logger.debug("Inserted %d rows into %s", len(out), collection)
            return out
        finally:
            conn.close()

    def _update_sync(self, collection: str, owner_id: str, row_id: str, changes: Row) -> Row | None:
        columns = self._columns(collection)
        fields: list[str] = []
        params: list[Any] = []

        for col, value in changes.items():
            if col not in columns:
                continue
            fields.append(f"{col} = ?")
            params.append(value)

        # updated_at never goes backwards.
        fields.append("updated_at = MAX(updated_at, ?)")
        params.append(str(changes.get("updated_at") or _utc_now_iso()))
        params.extend([row_id, owner_id])

        conn = self._get_conn()
        try:
            with conn:
                cur = conn.execute(
                    f"UPDATE {collection} SET {', '.join(fields)} WHERE id = ? AND owner_id = ?",
                    params,
                )
            if cur.rowcount != 1:
                return None
            row = conn.execute(f"SELECT * FROM {collection} WHERE id = ?", (row_id,)).fetchone()
            return self._row_to_dict(row) if row else None
        finally:
            conn.close()

    def _delete_sync(self, collection: str, owner_id: str, row_id: str) -> bool:
        self._columns(collection)
        conn = self._get_conn()
        try:
            with conn:
                cur = conn.execute(
                    f"DELETE FROM {collection} WHERE id = ? AND owner_id = ?",
                    (row_id, owner_id),
                )
            return cur.rowcount == 1
        finally:
            conn.close()

    async def _run(self, fn, *args: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args)
        except sqlite3.Error as e:
            raise StoreError(f"sqlite error: {e}") from e

    # ---- KeyedStore API ----

    async def select(
        self,
        collection: str,
        *,
        owner_id: str,
        order_by: str,
        nulls_last: bool = True,
    ) -> list[Row]:
        return await self._run(self._select_sync, collection, owner_id, order_by, nulls_last)

    async def insert(self, collection: str, rows: Sequence[Row]) -> list[Row]:
        if not rows:
            return []
        return await self._run(self._insert_sync, collection, list(rows))

    async def update(self, collection: str, row_id: str, changes: Row, *, owner_id: str) -> Row | None:
        return await self._run(self._update_sync, collection, owner_id, row_id, dict(changes))

    async def delete(self, collection: str, row_id: str, *, owner_id: str) -> bool:
        return await self._run(self._delete_sync, collection, owner_id, row_id)
