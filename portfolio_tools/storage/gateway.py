"""
Storage gateway for the keyed object cache.

Every store lives in its own embedded SQLite file (one file per ``db_name``)
with one table per ``store_name``. The schema version is tracked through
``PRAGMA user_version`` for the whole file; a store's table is created when
the file is new, when a higher version is requested, or when it is missing
from a file another store already brought to the current version.
"""

import re
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Tuple, TypeVar, Union

import aiosqlite

from shared.logging import get_logger

from .errors import StorageUnavailable, StorageVersionError, StorageWriteFailed
from .records import StoredRecord, decode_record, encode_record

T = TypeVar("T")

READONLY = "readonly"
READWRITE = "readwrite"

_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]+$")

_SELECT_COLUMNS = "id, label, created_at, payload_kind, payload, meta"
_SIZE_EXPR = (
    "length(CAST(id AS BLOB)) + length(CAST(label AS BLOB)) "
    "+ length(payload) + length(CAST(meta AS BLOB))"
)


def _check_name(kind: str, value: str) -> str:
    if not value or not _NAME_RE.match(value):
        raise ValueError(f"Invalid {kind}: {value!r}")
    return value


class StoreTable:
    """Object-store view bound to a single open transaction."""

    def __init__(self, conn: aiosqlite.Connection, store_name: str, mode: str):
        self._conn = conn
        self._table = f'"{store_name}"'
        self.mode = mode

    def _ensure_writable(self, operation: str) -> None:
        if self.mode != READWRITE:
            raise StorageWriteFailed(
                f"Cannot {operation} inside a read-only transaction.",
                details={"operation": operation},
            )

    async def put(self, record: StoredRecord) -> None:
        self._ensure_writable("put")
        kind, payload, meta = encode_record(record)
        try:
            await self._conn.execute(
                f"INSERT OR REPLACE INTO {self._table} "
                f"(id, label, created_at, payload_kind, payload, meta) VALUES (?, ?, ?, ?, ?, ?)",
                (record.id, record.label, int(record.created_at), kind, payload, meta),
            )
        except sqlite3.Error as exc:
            raise StorageWriteFailed(
                f"Could not write record {record.id!r}: {exc}",
                details={"id": record.id},
            ) from exc

    async def get(self, record_id: str) -> Optional[StoredRecord]:
        async with self._conn.execute(
            f"SELECT {_SELECT_COLUMNS} FROM {self._table} WHERE id = ?", (record_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return decode_record(row) if row is not None else None

    async def get_all(self) -> List[StoredRecord]:
        async with self._conn.execute(
            f"SELECT {_SELECT_COLUMNS} FROM {self._table} ORDER BY created_at DESC, rowid DESC"
        ) as cursor:
            rows = await cursor.fetchall()
        return [decode_record(row) for row in rows]

    async def delete(self, record_id: str) -> None:
        self._ensure_writable("delete")
        await self._conn.execute(f"DELETE FROM {self._table} WHERE id = ?", (record_id,))

    async def clear(self) -> None:
        self._ensure_writable("clear")
        await self._conn.execute(f"DELETE FROM {self._table}")

    async def sizes(self) -> List[Tuple[str, int, int]]:
        """``(id, created_at, encoded_size)`` for every record, oldest first."""
        async with self._conn.execute(
            f"SELECT id, created_at, {_SIZE_EXPR} AS size FROM {self._table} ORDER BY created_at ASC, rowid ASC"
        ) as cursor:
            rows = await cursor.fetchall()
        return [(row["id"], int(row["created_at"]), int(row["size"] or 0)) for row in rows]


class KeyedStore:
    """Keyed persistent store for one ``(db_name, store_name)`` pair."""

    def __init__(
        self,
        db_name: str,
        store_name: str,
        version: int = 1,
        root_dir: Optional[Union[str, Path]] = None,
        quota_bytes: Optional[int] = None,
        busy_timeout: float = 5.0,
    ):
        if version < 1:
            raise ValueError("version must be a positive integer")
        self.db_name = _check_name("db_name", db_name)
        self.store_name = _check_name("store_name", store_name)
        self.version = int(version)
        self.root_dir = Path(root_dir) if root_dir is not None else None
        self.quota_bytes = quota_bytes
        self.busy_timeout = busy_timeout
        self.logger = get_logger(__name__).bind(db=db_name, store=store_name)

    @property
    def path(self) -> Optional[Path]:
        if self.root_dir is None:
            return None
        return self.root_dir / f"{self.db_name}.sqlite3"

    def is_supported(self) -> bool:
        """True when a root directory is configured and can be created."""
        if self.root_dir is None:
            return False
        try:
            self.root_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            return False
        return self.root_dir.is_dir()

    async def open(self) -> aiosqlite.Connection:
        """
        Open (creating if needed) the store and return a live connection.

        The caller owns the returned connection and must close it.

        Raises:
            StorageUnavailable: no usable root directory or the file cannot be opened.
            StorageVersionError: the file was written by a newer schema version.
        """
        if not self.is_supported():
            raise StorageUnavailable(details={"db": self.db_name})

        try:
            conn = await aiosqlite.connect(str(self.path), timeout=self.busy_timeout, isolation_level=None)
        except (sqlite3.Error, OSError) as exc:
            raise StorageUnavailable(
                f"Could not open {self.path}: {exc}", details={"db": self.db_name}
            ) from exc

        try:
            conn.row_factory = aiosqlite.Row
            await self._upgrade(conn)
            if self.quota_bytes:
                await self._apply_quota(conn)
        except BaseException:
            await conn.close()
            raise
        return conn

    async def _upgrade(self, conn: aiosqlite.Connection) -> None:
        async with conn.execute("PRAGMA user_version") as cursor:
            row = await cursor.fetchone()
        current = int(row[0]) if row else 0

        if current > self.version:
            raise StorageVersionError(
                f"{self.db_name} is at version {current}, newer than requested {self.version}",
                details={"db": self.db_name, "stored": current, "requested": self.version},
            )
        if current == self.version and await self._table_exists(conn):
            return

        await conn.execute("BEGIN IMMEDIATE")
        try:
            await conn.execute(
                f'CREATE TABLE IF NOT EXISTS "{self.store_name}" ('
                "id TEXT PRIMARY KEY NOT NULL, "
                "label TEXT NOT NULL DEFAULT '', "
                "created_at INTEGER NOT NULL, "
                "payload_kind TEXT NOT NULL, "
                "payload BLOB, "
                "meta TEXT NOT NULL DEFAULT '{}')"
            )
            await conn.execute(
                f'CREATE INDEX IF NOT EXISTS "{self.store_name}_created_at" '
                f'ON "{self.store_name}" (created_at)'
            )
            await conn.execute(f"PRAGMA user_version = {self.version}")
            await conn.execute("COMMIT")
        except BaseException:
            if conn.in_transaction:
                await conn.execute("ROLLBACK")
            raise

        self.logger.info("Keyed store upgraded", from_version=current, to_version=self.version)

    async def _table_exists(self, conn: aiosqlite.Connection) -> bool:
        async with conn.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (self.store_name,)
        ) as cursor:
            return await cursor.fetchone() is not None

    async def _apply_quota(self, conn: aiosqlite.Connection) -> None:
        async with conn.execute("PRAGMA page_size") as cursor:
            row = await cursor.fetchone()
        page_size = int(row[0])
        max_pages = max(1, self.quota_bytes // page_size)
        await conn.execute(f"PRAGMA max_page_count = {max_pages}")

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Scoped connection: opened on entry, always closed on exit."""
        conn = await self.open()
        try:
            yield conn
        finally:
            await conn.close()

    async def run_transaction(self, mode: str, action: Callable[[StoreTable], Awaitable[T]]) -> T:
        """
        Run ``action(table)`` inside one transaction.

        Commits and returns the action's result; on any error the transaction
        is rolled back and the error re-raised.
        """
        if mode not in (READONLY, READWRITE):
            raise ValueError(f"Unknown transaction mode: {mode!r}")

        async with self.connection() as conn:
            if mode == READONLY:
                await conn.execute("PRAGMA query_only = ON")
                await conn.execute("BEGIN")
            else:
                await conn.execute("BEGIN IMMEDIATE")

            try:
                result = await action(StoreTable(conn, self.store_name, mode))
                await conn.execute("COMMIT")
            except sqlite3.Error as exc:
                if conn.in_transaction:
                    await conn.execute("ROLLBACK")
                if mode == READWRITE:
                    raise StorageWriteFailed(
                        f"Transaction on {self.store_name} failed: {exc}",
                        details={"db": self.db_name},
                    ) from exc
                raise
            except BaseException:
                if conn.in_transaction:
                    await conn.execute("ROLLBACK")
                raise
            return result

    # Convenience operations. StorageUnavailable degrades to an empty result.

    async def put(self, record: StoredRecord) -> None:
        try:
            await self.run_transaction(READWRITE, lambda table: table.put(record))
        except StorageUnavailable as exc:
            self.logger.debug("Keyed store unavailable, put skipped", id=record.id, error=exc.message)

    async def get(self, record_id: str) -> Optional[StoredRecord]:
        try:
            return await self.run_transaction(READONLY, lambda table: table.get(record_id))
        except StorageUnavailable as exc:
            self.logger.debug("Keyed store unavailable, get skipped", id=record_id, error=exc.message)
            return None

    async def get_all(self) -> List[StoredRecord]:
        try:
            return await self.run_transaction(READONLY, lambda table: table.get_all())
        except StorageUnavailable as exc:
            self.logger.debug("Keyed store unavailable, returning no records", error=exc.message)
            return []

    async def delete_by_id(self, record_id: str) -> None:
        try:
            await self.run_transaction(READWRITE, lambda table: table.delete(record_id))
        except StorageUnavailable as exc:
            self.logger.debug("Keyed store unavailable, delete skipped", id=record_id, error=exc.message)

    async def clear(self) -> None:
        try:
            await self.run_transaction(READWRITE, lambda table: table.clear())
        except StorageUnavailable as exc:
            self.logger.debug("Keyed store unavailable, clear skipped", error=exc.message)

    def __repr__(self) -> str:
        return f"KeyedStore(db_name={self.db_name!r}, store_name={self.store_name!r}, version={self.version})"

