"""
agent.memory - Per-turn conversation memory backed by the message log.

Stores messages as a plain list[BaseMessage]. Every append is written
through to the ConversationStore immediately, so a failure halfway
through a turn keeps everything appended before it.
"""

from __future__ import annotations

import logging
from typing import Sequence

from langchain_core.messages import BaseMessage

from domain.ports import ConversationStore

logger = logging.getLogger(__name__)


class ConversationMemory:
    """Conversation history of one session for the duration of one turn.

    Not shared: the executor builds one per turn while holding the
    session lock.
    """

    def __init__(self, store: ConversationStore, thread_id: str):
        self._store = store
        self._thread_id = thread_id
        self._messages: list[BaseMessage] = []

    @property
    def thread_id(self) -> str:
        return self._thread_id

    @property
    def messages(self) -> list[BaseMessage]:
        """Current history (copy), oldest first."""
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    async def load(self) -> int:
        """Load the stored history. Returns the number of messages loaded."""
        self._messages = await self._store.load(self._thread_id)
        if self._messages:
            logger.info(
                "Loaded %d messages for thread %s",
                len(self._messages), self._thread_id,
            )
        return len(self._messages)

    async def append(self, message: BaseMessage) -> None:
        await self.extend([message])

    async def extend(self, messages: Sequence[BaseMessage]) -> None:
        """Persist messages, then add them to the in-memory history."""
        if not messages:
            return
        await self._store.append(self._thread_id, messages)
        self._messages.extend(messages)
