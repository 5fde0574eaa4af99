"""
infrastructure.persistence.connection - Async SQLite connection manager.

Wraps aiosqlite with a context manager: one connection per operation,
committed on success, rolled back on failure. Concurrent writers from
different sessions wait on SQLite's busy timeout instead of failing.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import aiosqlite

from domain.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class AsyncSQLiteConnection:
    """Async SQLite connection provider with auto-commit/rollback."""

    def __init__(self, db_path: str, busy_timeout: float = 30.0):
        self._db_path = db_path
        self._busy_timeout = busy_timeout

    @property
    def db_path(self) -> str:
        return self._db_path

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield an async SQLite connection with FK support.

        Commits on success, rolls back on exception. Driver errors
        (locked database, unreadable file, bad SQL) are re-raised as
        PersistenceError.
        """
        try:
            async with aiosqlite.connect(self._db_path, timeout=self._busy_timeout) as conn:
                await conn.execute("PRAGMA foreign_keys = ON")
                conn.row_factory = aiosqlite.Row
                try:
                    yield conn
                    await conn.commit()
                except Exception:
                    await conn.rollback()
                    logger.exception("Database operation failed, transaction rolled back.")
                    raise
        except aiosqlite.Error as exc:
            raise PersistenceError(f"SQLite operation failed on {self._db_path}: {exc}") from exc
