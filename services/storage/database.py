# services/storage/database.py
"""
Local embedded store backed by SQLite (``aiosqlite``).

Three tables are created on ``open()``:

* ``captured_pages``  – one row per page URL, the full document as JSON
* ``capture_history`` – one row per successful capture, keyed by timestamp
* ``link_index``      – one row per link URL, secondary index on source host
"""

import sqlite3
from pathlib import Path
from typing import Any, Iterable, List, Optional

import aiosqlite
from loguru import logger

from models.stats import DatabaseStatus
from services.capture.exceptions import StoreError

STORES = ("captured_pages", "capture_history", "link_index")

SCHEMA = """
CREATE TABLE IF NOT EXISTS captured_pages (
    url        TEXT PRIMARY KEY,
    hostname   TEXT NOT NULL,
    title      TEXT NOT NULL,
    timestamp  INTEGER NOT NULL,
    document   TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_pages_hostname ON captured_pages (hostname);
CREATE INDEX IF NOT EXISTS idx_pages_timestamp ON captured_pages (timestamp);

CREATE TABLE IF NOT EXISTS capture_history (
    timestamp  INTEGER PRIMARY KEY,
    url        TEXT NOT NULL,
    hostname   TEXT NOT NULL,
    title      TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_history_url ON capture_history (url);

CREATE TABLE IF NOT EXISTS link_index (
    url              TEXT PRIMARY KEY,
    source_hostname  TEXT NOT NULL,
    source_url       TEXT NOT NULL,
    discovered_at    INTEGER NOT NULL,
    last_seen        INTEGER NOT NULL,
    record           TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_links_source_hostname ON link_index (source_hostname);
"""


class Database:
    """Owns the single ``aiosqlite`` connection shared by the stores."""

    def __init__(self, path: str = ":memory:"):
        self.path = path
        self._conn: Optional[aiosqlite.Connection] = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def open(self) -> "Database":
        if self._conn is not None:
            return self
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = await aiosqlite.connect(self.path)
            await self._conn.executescript(SCHEMA)
            await self._conn.commit()
        except sqlite3.Error as exc:
            raise StoreError("open", f"{self.path}: {exc}") from exc
        logger.info(f"Local store opened at {self.path} (tables: {', '.join(STORES)})")
        return self

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("Local store closed")

    async def __aenter__(self) -> "Database":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Query helpers – every sqlite error becomes a StoreError
    # ------------------------------------------------------------------
    def _require(self, operation: str) -> aiosqlite.Connection:
        if self._conn is None:
            raise StoreError(operation, "database is not open")
        return self._conn

    async def execute(self, operation: str, sql: str, params: Iterable[Any] = ()) -> None:
        conn = self._require(operation)
        try:
            await conn.execute(sql, tuple(params))
            await conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(operation, str(exc)) from exc

    async def fetch_one(self, operation: str, sql: str, params: Iterable[Any] = ()) -> Optional[tuple]:
        conn = self._require(operation)
        try:
            async with conn.execute(sql, tuple(params)) as cursor:
                return await cursor.fetchone()
        except sqlite3.Error as exc:
            raise StoreError(operation, str(exc)) from exc

    async def fetch_all(self, operation: str, sql: str, params: Iterable[Any] = ()) -> List[tuple]:
        conn = self._require(operation)
        try:
            async with conn.execute(sql, tuple(params)) as cursor:
                return list(await cursor.fetchall())
        except sqlite3.Error as exc:
            raise StoreError(operation, str(exc)) from exc

    def status(self) -> DatabaseStatus:
        if self._conn is None:
            return DatabaseStatus()
        return DatabaseStatus(initialized=True, stores=list(STORES), message="Database ready")
