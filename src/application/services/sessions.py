"""
application.services.sessions - Session lifecycle.

Creates the session record on the first message of a conversation and
exposes the list/rename/delete operations behind the sidebar.
"""

from __future__ import annotations

import logging

from langchain_core.messages import BaseMessage

from domain.entities import Session
from domain.exceptions import SessionNotFoundError, ValidationError
from domain.ports import SessionRepository
from application.context import TurnContext
from agent.messages import session_name_for

logger = logging.getLogger(__name__)


class SessionService:
    """Session metadata operations."""

    def __init__(self, session_repo: SessionRepository):
        self._repo = session_repo

    async def ensure_session(self, ctx: TurnContext, first_message: BaseMessage) -> bool:
        """Create the session record if it doesn't exist yet.

        Returns True when a new record was created (ctx.is_new_session is
        updated to match).
        """
        if await self._repo.get(ctx.thread_id) is not None:
            ctx.is_new_session = False
            return False

        created = await self._repo.create(
            Session(id=ctx.thread_id, name=session_name_for(first_message))
        )
        ctx.is_new_session = created
        if created:
            logger.info("Created session %s", ctx.thread_id)
        return created

    async def get(self, session_id: str) -> Session | None:
        return await self._repo.get(session_id)

    async def list_sessions(self) -> list[Session]:
        return await self._repo.list_all()

    async def rename(self, session_id: str, name: str) -> None:
        name = (name or "").strip()
        if not session_id or not name:
            raise ValidationError("Session id and name are required")
        if not await self._repo.rename(session_id, name):
            raise SessionNotFoundError(f"Session not found: {session_id}")
        logger.info("Renamed session %s", session_id)

    async def delete(self, session_id: str) -> bool:
        """Delete the session record and its message log.

        Returns False if nothing was stored under session_id.
        """
        if not session_id:
            raise ValidationError("Session id is required")
        deleted = await self._repo.delete_with_history(session_id)
        if deleted:
            logger.info("Deleted session %s", session_id)
        return deleted
