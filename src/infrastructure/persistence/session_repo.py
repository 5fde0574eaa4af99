"""
infrastructure.persistence.session_repo - SQLite session metadata repository.

Stores sidebar metadata (id, display name, creation time). Independent of
message content, except for delete_with_history() which removes both in
one transaction.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from domain.entities import Session
from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)


class SQLiteSessionRepository:
    """Async SQLite implementation of SessionRepository."""

    def __init__(self, connection: AsyncSQLiteConnection):
        self._conn = connection

    async def create(self, session: Session) -> bool:
        """Insert the session unless one with the same id exists.

        Returns True if a row was created.
        """
        created_at = session.created_at or datetime.now().isoformat()
        async with self._conn.acquire() as conn:
            cursor = await conn.execute(
                "INSERT OR IGNORE INTO sessions (id, name, created_at) VALUES (?, ?, ?)",
                (session.id, session.name, created_at),
            )
            return cursor.rowcount > 0

    async def get(self, session_id: str) -> Optional[Session]:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                "SELECT id, name, created_at FROM sessions WHERE id = ?",
                (session_id,),
            )
            return self._row_to_entity(rows[0]) if rows else None

    async def list_all(self) -> list[Session]:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                "SELECT id, name, created_at FROM sessions ORDER BY created_at DESC, id",
            )
            return [self._row_to_entity(r) for r in rows]

    async def rename(self, session_id: str, name: str) -> bool:
        async with self._conn.acquire() as conn:
            cursor = await conn.execute(
                "UPDATE sessions SET name = ? WHERE id = ?",
                (name, session_id),
            )
            return cursor.rowcount > 0

    async def delete_with_history(self, session_id: str) -> bool:
        """Delete the session row and its message log atomically.

        Returns True if a session row existed.
        """
        async with self._conn.acquire() as conn:
            await conn.execute(
                "DELETE FROM checkpoint_messages WHERE thread_id = ?",
                (session_id,),
            )
            cursor = await conn.execute(
                "DELETE FROM sessions WHERE id = ?",
                (session_id,),
            )
            return cursor.rowcount > 0

    @staticmethod
    def _row_to_entity(row) -> Session:
        return Session(
            id=row[0],
            name=row[1] or "",
            created_at=row[2] or "",
        )
