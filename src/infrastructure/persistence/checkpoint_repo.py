"""
infrastructure.persistence.checkpoint_repo - SQLite conversation state store.

Stores each session's message log as an append-only sequence of LangChain
message dicts. Rows are never updated; a turn appends one row per message.
"""

from __future__ import annotations

import asyncio
import json
import logging
import weakref
from datetime import datetime
from typing import Sequence

from langchain_core.messages import BaseMessage, message_to_dict, messages_from_dict

from domain.entities import StoredMessage
from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)


class SQLiteCheckpointRepository:
    """Async SQLite implementation of ConversationStore.

    One instance must be shared by every writer in the process: the
    per-session locks live on the instance.
    """

    def __init__(self, connection: AsyncSQLiteConnection):
        self._conn = connection
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def lock(self, thread_id: str) -> asyncio.Lock:
        """Return the exclusive write lock for *thread_id*."""
        lock = self._locks.get(thread_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[thread_id] = lock
        return lock

    async def load(self, thread_id: str) -> list[BaseMessage]:
        """Return the full message history for a session, oldest first.

        Unknown session ids yield an empty list.
        """
        rows = await self.get_by_thread(thread_id)
        return messages_from_dict([json.loads(r.message) for r in rows])

    async def get_by_thread(self, thread_id: str) -> list[StoredMessage]:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                """SELECT thread_id, seq, message, created_at
                   FROM checkpoint_messages
                   WHERE thread_id = ?
                   ORDER BY seq ASC""",
                (thread_id,),
            )
            return [self._row_to_entity(r) for r in rows]

    async def append(self, thread_id: str, messages: Sequence[BaseMessage]) -> int:
        """Append messages after the current tail. Returns the new length."""
        if not messages:
            return await self.count(thread_id)
        now = datetime.now().isoformat()
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                "SELECT COALESCE(MAX(seq), -1) FROM checkpoint_messages WHERE thread_id = ?",
                (thread_id,),
            )
            next_seq = rows[0][0] + 1
            await conn.executemany(
                """INSERT INTO checkpoint_messages
                   (thread_id, seq, message, created_at)
                   VALUES (?, ?, ?, ?)""",
                [
                    (thread_id, next_seq + i, json.dumps(message_to_dict(m)), now)
                    for i, m in enumerate(messages)
                ],
            )
        logger.debug(
            "Appended %d message(s) to thread %s (seq %d..%d)",
            len(messages), thread_id, next_seq, next_seq + len(messages) - 1,
        )
        return next_seq + len(messages)

    async def count(self, thread_id: str) -> int:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                "SELECT COUNT(*) FROM checkpoint_messages WHERE thread_id = ?",
                (thread_id,),
            )
            return rows[0][0]

    async def delete(self, thread_id: str) -> None:
        async with self._conn.acquire() as conn:
            await conn.execute(
                "DELETE FROM checkpoint_messages WHERE thread_id = ?",
                (thread_id,),
            )

    @staticmethod
    def _row_to_entity(row) -> StoredMessage:
        return StoredMessage(
            thread_id=row[0],
            seq=row[1],
            message=row[2],
            created_at=row[3] or "",
        )
