"""
The bot's single SQLite connection.

Kestrel keeps one aiosqlite connection open for its whole lifetime. Readers
use it as-is; writers queue on a lock inside :meth:`ConnectionManager.transaction`
so a write either commits entirely or is rolled back.

Usage
-----
    await db_connection.open(path)

    async with db_connection.read() as conn:
        cursor = await conn.execute("SELECT ...")

    async with db_connection.transaction() as conn:
        await conn.execute("INSERT ...")

    await db_connection.close()
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from kestrel.util.logger import get_logger

logger = get_logger("database_connection")

# Applied in order right after connecting.
CONNECTION_PRAGMAS = {
    "journal_mode": "WAL",
    "synchronous": "NORMAL",
    "busy_timeout": "5000",
    "temp_store": "MEMORY",
}


class ConnectionManager:
    """Owner of the aiosqlite connection and of the writer lock."""

    def __init__(self) -> None:
        self._db: aiosqlite.Connection | None = None
        self._writer = asyncio.Lock()
        self.path: Path | None = None

    @property
    def is_open(self) -> bool:
        return self._db is not None

    async def open(self, path: Path) -> None:
        """
        Connect to ``path`` (creating its directory) and apply the pragmas.

        Opening an already open manager is a no-op.
        """
        if self._db is not None:
            logger.warning("[DB] %s is already open", self.path)
            return

        path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(path)
        db.row_factory = aiosqlite.Row
        for name, value in CONNECTION_PRAGMAS.items():
            await db.execute(f"PRAGMA {name} = {value}")
        await db.commit()

        self._db = db
        self.path = path
        logger.info("[DB] Connected to %s", path)

    async def close(self) -> None:
        """Checkpoint the write-ahead log and disconnect. Safe to call twice."""
        db, self._db = self._db, None
        if db is None:
            return
        try:
            await db.execute("PRAGMA wal_checkpoint(TRUNCATE)")
        except aiosqlite.Error as exc:
            logger.error("[DB] WAL checkpoint failed: %s", exc)
        finally:
            await db.close()
        logger.info("[DB] Disconnected from %s", self.path)

    @property
    def connection(self) -> aiosqlite.Connection:
        """
        The open connection.

        Raises:
            RuntimeError: ``open()`` has not been awaited yet.
        """
        if self._db is None:
            raise RuntimeError("database connection is not open; await db_connection.open(path) first")
        return self._db

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """One writer at a time; commit on success, roll back and re-raise on error."""
        db = self.connection
        async with self._writer:
            try:
                yield db
            except BaseException:
                await db.rollback()
                raise
            await db.commit()

    @asynccontextmanager
    async def read(self) -> AsyncIterator[aiosqlite.Connection]:
        yield self.connection


db_connection = ConnectionManager()
