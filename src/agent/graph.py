"""
agent.graph - The turn state machine.

One turn runs AWAIT_MODEL -> DECIDE -> (EXEC_TOOLS -> AWAIT_MODEL)* -> DONE.
Which states exist is fixed when the graph is built: a graph without
tools only has the AWAIT_MODEL -> DONE edge, so it can never emit tool
events whatever the model returns.

A compiled graph holds no per-turn state and is shared between
concurrent turns through the graph cache.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence

from langchain_core.messages import AIMessage, SystemMessage

from domain.exceptions import ModelError, TurnLimitError
from domain.models import GraphConfig, ModelDelta, ModelFinal
from domain.ports import ChatModelPort
from agent.events import ChunkEvent, ToolCallsEvent, ToolErrorEvent, ToolResultEvent, TurnEvent
from agent.memory import ConversationMemory
from agent.prompt import build_system_prompt
from agent.tools.base import ToolDescriptor, ToolOutcome
from agent.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

Emit = Callable[[TurnEvent], Awaitable[object]]


class TurnState(str, Enum):
    AWAIT_MODEL = "await_model"
    DECIDE = "decide"
    EXEC_TOOLS = "exec_tools"
    DONE = "done"


@dataclass
class _TurnRun:
    """Mutable state of one turn through the graph."""
    memory: ConversationMemory
    emit: Emit
    model_calls: int = 0
    last_reply: Optional[AIMessage] = None


class TurnGraph:
    """Compiled orchestrator for one GraphConfig."""

    def __init__(
        self,
        config: GraphConfig,
        model: ChatModelPort,
        registry: ToolRegistry,
        tools: Sequence[ToolDescriptor] = (),
        max_iterations: int = 10,
    ):
        self.config = config
        self._registry = registry
        self._tools = list(tools)
        self._max_iterations = max_iterations
        self._system_prompt = build_system_prompt(self._tools)

        if self._tools:
            self._model = model.bind_tools([t.to_model_spec() for t in self._tools])
            self._edges = {
                TurnState.AWAIT_MODEL: (TurnState.DECIDE,),
                TurnState.DECIDE: (TurnState.EXEC_TOOLS, TurnState.DONE),
                TurnState.EXEC_TOOLS: (TurnState.AWAIT_MODEL,),
            }
        else:
            self._model = model
            self._edges = {TurnState.AWAIT_MODEL: (TurnState.DONE,)}

        self._nodes = {
            TurnState.AWAIT_MODEL: self._await_model,
            TurnState.DECIDE: self._decide,
            TurnState.EXEC_TOOLS: self._exec_tools,
        }

    @property
    def states(self) -> frozenset[TurnState]:
        """States reachable in this graph."""
        reachable = set(self._edges)
        for targets in self._edges.values():
            reachable.update(targets)
        return frozenset(reachable)

    @property
    def tool_names(self) -> tuple[str, ...]:
        return self.config.tool_names

    async def run(self, memory: ConversationMemory, emit: Emit) -> AIMessage:
        """Drive one turn to DONE. Returns the final assistant message.

        memory must already contain the new user message.

        Raises:
            ModelError: The model call failed.
            TurnLimitError: More than max_iterations model calls.
            PersistenceError: An append could not be stored.
        """
        run = _TurnRun(memory=memory, emit=emit)
        state = TurnState.AWAIT_MODEL
        while state is not TurnState.DONE:
            next_state = await self._nodes[state](run)
            if next_state not in self._edges[state]:
                raise RuntimeError(f"Illegal transition {state.value} -> {next_state.value}")
            logger.debug("Thread %s: %s -> %s", memory.thread_id, state.value, next_state.value)
            state = next_state

        logger.info(
            "Turn finished for thread %s after %d model call(s)",
            memory.thread_id, run.model_calls,
        )
        return run.last_reply

    # ── Nodes ──────────────────────────────────────────────────────────

    async def _await_model(self, run: _TurnRun) -> TurnState:
        if run.model_calls >= self._max_iterations:
            raise TurnLimitError(
                f"Turn exceeded {self._max_iterations} model calls"
            )
        run.model_calls += 1

        history = [SystemMessage(content=self._system_prompt), *run.memory.messages]
        reply: Optional[AIMessage] = None
        async for item in self._model.stream_invoke(history):
            if isinstance(item, ModelDelta):
                if item.content:
                    await run.emit(ChunkEvent(content=item.content))
            elif isinstance(item, ModelFinal):
                reply = item.message
        if reply is None:
            raise ModelError(f"{self.config.model_id}: stream ended without a final message")

        if not self._tools and reply.tool_calls:
            logger.warning(
                "Model requested %d tool call(s) but no tools are enabled; ignoring",
                len(reply.tool_calls),
            )
            reply = AIMessage(
                content=reply.content,
                id=reply.id,
                response_metadata=reply.response_metadata,
            )

        await run.memory.append(reply)
        run.last_reply = reply
        return self._edges[TurnState.AWAIT_MODEL][0]

    async def _decide(self, run: _TurnRun) -> TurnState:
        if run.last_reply is not None and run.last_reply.tool_calls:
            await run.emit(ToolCallsEvent(tool_calls=list(run.last_reply.tool_calls)))
            return TurnState.EXEC_TOOLS
        return TurnState.DONE

    async def _exec_tools(self, run: _TurnRun) -> TurnState:
        calls = list(run.last_reply.tool_calls)

        async def _invoke(call: dict) -> ToolOutcome:
            if call["name"] not in self.config.tool_names:
                outcome = ToolOutcome.failure(
                    call["name"], call["id"], f"Tool '{call['name']}' is not available",
                )
            else:
                outcome = await self._registry.invoke(call["name"], call.get("args"), call["id"])
            if outcome.ok:
                await run.emit(ToolResultEvent(name=outcome.name, id=outcome.call_id, output=outcome.output))
            else:
                await run.emit(ToolErrorEvent(name=outcome.name, id=outcome.call_id, error=outcome.error))
            return outcome

        # All calls finish before the model is consulted again
        outcomes = await asyncio.gather(*(_invoke(c) for c in calls))
        await run.memory.extend([o.to_message() for o in outcomes])
        return TurnState.AWAIT_MODEL
