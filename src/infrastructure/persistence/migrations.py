"""
infrastructure.persistence.migrations - Database schema creation.

Two tables: session metadata for the sidebar, and the append-only
message log that the turn executor reads and writes. Called once at
startup by the factory.
"""

from __future__ import annotations

import logging

from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)

_TABLES = [
    """CREATE TABLE IF NOT EXISTS sessions (
        id TEXT PRIMARY KEY,
        name TEXT,
        created_at TEXT
    )""",
    # message is a LangChain message dict serialized as JSON
    """CREATE TABLE IF NOT EXISTS checkpoint_messages (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        thread_id TEXT NOT NULL,
        seq INTEGER NOT NULL,
        message TEXT NOT NULL,
        created_at TEXT,
        UNIQUE (thread_id, seq)
    )""",
    """CREATE INDEX IF NOT EXISTS idx_sessions_created
        ON sessions (created_at)""",
]


async def run_migrations(connection: AsyncSQLiteConnection) -> None:
    """Create all tables if they don't exist and switch the file to WAL.

    Safe to call multiple times (uses IF NOT EXISTS).
    """
    async with connection.acquire() as conn:
        # Readers don't block the single writer
        await conn.execute("PRAGMA journal_mode = WAL")
        for ddl in _TABLES:
            await conn.execute(ddl)
    logger.info("Schema ready at %s (%d statements).", connection.db_path, len(_TABLES))
