"""SQLite-backed ledger stores, one database per room."""

from __future__ import annotations

import asyncio
import logging
import re
import sqlite3
import threading
from pathlib import Path
from typing import Callable, TypeVar

from ...application.ports.ledger_store import LedgerRegistryPort, LedgerStorePort
from ...domain.errors import LedgerAccessError, LedgerKeyNotFound
from ...domain.models.ledger_entry import LedgerEntry

logger = logging.getLogger(__name__)

T = TypeVar("T")

LEDGER_FILENAME = "ledger.sqlite3"
ROOM_DIR_SUFFIX = ".hashes"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS ledger (
    key BLOB PRIMARY KEY,
    value BLOB NOT NULL
) WITHOUT ROWID
"""


def room_dirname(room_id: str) -> str:
    """
    Map a room id to a filesystem-safe directory name.

    Characters outside [A-Za-z0-9_-] are percent-encoded, so distinct room ids
    always map to distinct names.
    """
    if not room_id:
        raise ValueError("room_id must be non-empty")
    safe = _UNSAFE_CHARS.sub(lambda m: "".join(f"%{b:02X}" for b in m.group().encode("utf-8")), room_id)
    return f"{safe}{ROOM_DIR_SUFFIX}"


class SqliteLedgerStoreAdapter(LedgerStorePort):
    """
    Ledger store backed by one SQLite database.

    Keys live in a WITHOUT ROWID table, so the store is ordered by key. The
    connection is shared by the pool workers; every call runs in a worker
    thread and is serialized by a lock.
    """

    def __init__(self, room_id: str, db_path: Path, busy_timeout_seconds: float = 5.0) -> None:
        """
        Open (or create) a room ledger.

        Args:
            room_id: Room the ledger belongs to (for error messages)
            db_path: Path to the SQLite database file
            busy_timeout_seconds: How long to wait on a locked database

        Raises:
            LedgerAccessError: If the database cannot be opened
        """
        self.room_id = room_id
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn: sqlite3.Connection | None = sqlite3.connect(
                str(self.db_path),
                timeout=busy_timeout_seconds,
                check_same_thread=False,
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute(_SCHEMA)
            self._conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise LedgerAccessError(room_id, f"cannot open {self.db_path}: {e}") from e

        logger.debug(
            "Opened room ledger",
            extra={"room_id": room_id, "db_path": str(self.db_path)},
        )

    async def get(self, key: bytes) -> bytes:
        return await asyncio.to_thread(self._locked, self._get, key)

    async def put(self, key: bytes, value: bytes) -> None:
        await asyncio.to_thread(self._locked, self._put, key, value)

    async def claim(self, key: bytes, value: bytes) -> tuple[bytes, bool]:
        return await asyncio.to_thread(self._locked, self._claim, key, value)

    async def count(self) -> int:
        return await asyncio.to_thread(self._locked, self._count)

    async def entries(self, limit: int | None = None) -> list[LedgerEntry]:
        return await asyncio.to_thread(self._locked, self._entries, limit)

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def _locked(self, fn: Callable[..., T], *args: object) -> T:
        with self._lock:
            if self._conn is None:
                raise LedgerAccessError(self.room_id, "ledger is closed")
            try:
                return fn(self._conn, *args)
            except sqlite3.Error as e:
                raise LedgerAccessError(self.room_id, str(e)) from e

    @staticmethod
    def _get(conn: sqlite3.Connection, key: bytes) -> bytes:
        row = conn.execute("SELECT value FROM ledger WHERE key = ?", (key,)).fetchone()
        if row is None:
            raise LedgerKeyNotFound(key)
        return bytes(row[0])

    @staticmethod
    def _put(conn: sqlite3.Connection, key: bytes, value: bytes) -> None:
        with conn:
            conn.execute(
                "INSERT INTO ledger (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )

    @staticmethod
    def _claim(conn: sqlite3.Connection, key: bytes, value: bytes) -> tuple[bytes, bool]:
        with conn:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO ledger (key, value) VALUES (?, ?)",
                (key, value),
            )
            created = cursor.rowcount == 1
            row = conn.execute("SELECT value FROM ledger WHERE key = ?", (key,)).fetchone()
        return bytes(row[0]), created

    @staticmethod
    def _count(conn: sqlite3.Connection) -> int:
        return conn.execute("SELECT COUNT(*) FROM ledger").fetchone()[0]

    @staticmethod
    def _entries(conn: sqlite3.Connection, limit: int | None) -> list[LedgerEntry]:
        query = "SELECT key, value FROM ledger ORDER BY key"
        params: tuple = ()
        if limit is not None:
            query += " LIMIT ?"
            params = (limit,)
        return [LedgerEntry(key=bytes(k), value=bytes(v)) for k, v in conn.execute(query, params)]


class SqliteLedgerRegistry(LedgerRegistryPort):
    """Registry of per-room SQLite ledgers under one root directory."""

    def __init__(self, root_dir: Path | str = "var/ledgers", busy_timeout_seconds: float = 5.0) -> None:
        self.root_dir = Path(root_dir)
        self.busy_timeout_seconds = busy_timeout_seconds
        self._stores: dict[str, SqliteLedgerStoreAdapter] = {}
        self._lock = threading.Lock()

    def ledger_path(self, room_id: str) -> Path:
        """Return the database path for a room (var/ledgers/{room}.hashes/ledger.sqlite3)."""
        return self.root_dir / room_dirname(room_id) / LEDGER_FILENAME

    def for_room(self, room_id: str) -> SqliteLedgerStoreAdapter:
        with self._lock:
            store = self._stores.get(room_id)
            if store is None:
                store = SqliteLedgerStoreAdapter(
                    room_id,
                    self.ledger_path(room_id),
                    busy_timeout_seconds=self.busy_timeout_seconds,
                )
                self._stores[room_id] = store
                logger.info(
                    f"Opened ledger for room '{room_id}'",
                    extra={"room_id": room_id, "db_path": str(store.db_path)},
                )
            return store

    def close(self) -> None:
        with self._lock:
            stores, self._stores = self._stores, {}
        for store in stores.values():
            store.close()

    def __enter__(self) -> SqliteLedgerRegistry:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
