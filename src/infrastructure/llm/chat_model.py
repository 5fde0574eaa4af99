"""
infrastructure.llm.chat_model - LangChain implementation of ChatModelPort.

Wraps any BaseChatModel behind the fixed invoke / stream_invoke / bind_tools
surface the turn graph relies on. Streamed chunks are merged with LangChain's
chunk addition so tool-call fragments arrive as one complete list.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Optional, Sequence
from uuid import uuid4

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, AIMessageChunk, BaseMessage
from langchain_core.runnables import Runnable

from domain.exceptions import ModelConfigurationError, ModelError
from domain.models import ModelDelta, ModelFinal

logger = logging.getLogger(__name__)


class LangChainChatModel:
    """Chat model adapter over a LangChain BaseChatModel.

    Implements ChatModelPort (structural typing, no explicit inheritance).
    """

    def __init__(
        self,
        model: BaseChatModel,
        model_id: str,
        runnable: Optional[Runnable] = None,
    ):
        self._model = model
        self._runnable = runnable if runnable is not None else model
        self.model_id = model_id

    def bind_tools(self, tools: Sequence[dict[str, Any]]) -> LangChainChatModel:
        """Return a copy of this adapter with tool-aware decoding enabled."""
        try:
            bound = self._model.bind_tools(list(tools))
        except NotImplementedError as exc:
            raise ModelConfigurationError(
                f"Model '{self.model_id}' does not support tool calling"
            ) from exc
        return LangChainChatModel(self._model, self.model_id, runnable=bound)

    async def invoke(self, history: Sequence[BaseMessage]) -> AIMessage:
        try:
            response = await self._runnable.ainvoke(list(history))
        except Exception as exc:
            raise ModelError(f"{self.model_id}: {exc}") from exc
        return _finalize(response)

    async def stream_invoke(
        self, history: Sequence[BaseMessage],
    ) -> AsyncIterator[ModelDelta | ModelFinal]:
        """Yield content deltas, then one ModelFinal with the merged message."""
        merged: Optional[AIMessageChunk] = None
        try:
            async for chunk in self._runnable.astream(list(history)):
                merged = chunk if merged is None else merged + chunk
                text = content_text(chunk.content)
                if text:
                    yield ModelDelta(content=text)
        except Exception as exc:
            raise ModelError(f"{self.model_id}: {exc}") from exc
        yield ModelFinal(message=_finalize(merged))


def content_text(content: Any) -> str:
    """Extract the text of a message content (plain string or content parts)."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(part.get("text", ""))
        return "".join(parts)
    return ""


def _finalize(message: Optional[BaseMessage]) -> AIMessage:
    """Turn a merged chunk (or a plain response) into a finalized AIMessage.

    Every tool call gets an id; providers that omit one get a generated id
    so tool-result messages can always reference their request.
    """
    if message is None:
        return AIMessage(content="")

    tool_calls = []
    for call in getattr(message, "tool_calls", None) or []:
        tool_calls.append({
            "name": call["name"],
            "args": call.get("args") or {},
            "id": call.get("id") or f"call_{uuid4().hex[:24]}",
            "type": "tool_call",
        })

    invalid = getattr(message, "invalid_tool_calls", None) or []
    if invalid:
        logger.warning(
            "Dropping %d malformed tool call(s) from model output: %s",
            len(invalid), [c.get("name") for c in invalid],
        )

    return AIMessage(
        content=message.content,
        tool_calls=tool_calls,
        id=message.id,
        response_metadata=getattr(message, "response_metadata", {}) or {},
        usage_metadata=getattr(message, "usage_metadata", None),
    )
