"""
domain.ports - Abstract interfaces (Protocols) for all system boundaries.

These define WHAT the system needs without specifying HOW. Infrastructure
modules provide concrete implementations. The agent and application layers
depend only on these protocols, never on concrete classes.

Using typing.Protocol (structural typing) instead of ABC: any class that
implements the methods satisfies the port without explicit inheritance.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, AsyncIterator, Protocol, Sequence, runtime_checkable

from domain.entities import Session
from domain.models import ModelDelta, ModelFinal

if TYPE_CHECKING:
    from langchain_core.messages import AIMessage, BaseMessage


# ---------------------------------------------------------------------------
# Model Port
# ---------------------------------------------------------------------------

@runtime_checkable
class ChatModelPort(Protocol):
    """A language model, optionally bound to a tool set.

    stream_invoke() yields ModelDelta items followed by exactly one
    ModelFinal. The stream is consumed once per turn and cannot be
    restarted. Provider failures surface as ModelError.
    """

    model_id: str

    async def invoke(self, history: Sequence[BaseMessage]) -> AIMessage: ...

    def stream_invoke(
        self, history: Sequence[BaseMessage],
    ) -> AsyncIterator[ModelDelta | ModelFinal]: ...

    def bind_tools(self, tools: Sequence[dict[str, Any]]) -> ChatModelPort: ...


# ---------------------------------------------------------------------------
# Repository Ports
# ---------------------------------------------------------------------------

@runtime_checkable
class ConversationStore(Protocol):
    """Append-only message log per session id.

    Writers must hold lock(thread_id) while appending so that two turns on
    the same session never interleave.
    """

    def lock(self, thread_id: str) -> asyncio.Lock: ...
    async def load(self, thread_id: str) -> list[BaseMessage]: ...
    async def append(self, thread_id: str, messages: Sequence[BaseMessage]) -> int: ...
    async def delete(self, thread_id: str) -> None: ...


@runtime_checkable
class SessionRepository(Protocol):
    """CRUD for Session metadata."""

    async def create(self, session: Session) -> bool: ...
    async def get(self, session_id: str) -> Session | None: ...
    async def list_all(self) -> list[Session]: ...
    async def rename(self, session_id: str, name: str) -> bool: ...
    async def delete_with_history(self, session_id: str) -> bool: ...
