"""
agent.executor - Runs turns and streams their events.

AgentExecutor resolves the graph for a request, runs the turn in a
background task and hands its events to the response through a bounded
channel. No component construction here: everything is injected by
factory.py.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Callable

from langchain_core.messages import BaseMessage, message_to_dict, messages_to_dict

from domain.exceptions import ModelError, PersistenceError, TurnLimitError
from domain.models import GraphConfig
from domain.ports import ChatModelPort, ConversationStore
from application.context import TurnContext
from agent.cache import GraphCache
from agent.channel import EventChannel
from agent.events import (
    SAFE_ERROR_MESSAGE,
    EndEvent,
    ErrorEvent,
    EventStreamEncoder,
    is_terminal,
)
from agent.graph import TurnGraph
from agent.memory import ConversationMemory
from agent.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

ModelFactory = Callable[[str], ChatModelPort]


class AgentExecutor:
    """Turn execution engine.

    Constructed once per process by factory.py. Holds the graph cache;
    all per-turn state lives in TurnContext and ConversationMemory.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        store: ConversationStore,
        model_factory: ModelFactory,
        default_model: str,
        max_iterations: int = 10,
        cache_size: int = 10,
        stream_buffer_size: int = 64,
    ):
        self._registry = registry
        self._store = store
        self._model_factory = model_factory
        self._default_model = default_model
        self._max_iterations = max_iterations
        self._buffer_size = stream_buffer_size
        self._cache: GraphCache[TurnGraph] = GraphCache(cache_size)
        self._tasks: set[asyncio.Task] = set()

    @property
    def cache(self) -> GraphCache[TurnGraph]:
        return self._cache

    @property
    def pending_turns(self) -> int:
        return len(self._tasks)

    async def prepare(self, ctx: TurnContext) -> TurnGraph:
        """Resolve tools and fetch (or compile) the graph for this request.

        Raises:
            ValidationError: Unknown provider, missing credentials, or a
                model that cannot call tools.
        """
        model_id = ctx.model_id or self._default_model
        tools = self._registry.resolve(ctx.tool_names)
        config = GraphConfig.for_request(model_id, [t.name for t in tools])
        return await self._cache.get_or_create(config, lambda: self._build_graph(config))

    def _build_graph(self, config: GraphConfig) -> TurnGraph:
        model = self._model_factory(config.model_id)
        tools = [self._registry.get(name) for name in config.tool_names]
        return TurnGraph(
            config=config,
            model=model,
            registry=self._registry,
            tools=tools,
            max_iterations=self._max_iterations,
        )

    async def stream_turn(
        self, ctx: TurnContext, graph: TurnGraph, message: BaseMessage,
    ) -> AsyncIterator[str]:
        """Run one turn and yield its NDJSON lines as they are produced.

        The turn itself runs in a background task. If the consumer stops
        early (client disconnect), the task keeps going so the history
        is still persisted; its remaining events are dropped.
        """
        channel = EventChannel(self._buffer_size)
        task = asyncio.create_task(self._run_turn(ctx, graph, message, channel))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        encoder = EventStreamEncoder()
        finished = False
        try:
            while True:
                event = await channel.receive()
                yield encoder.encode(event)
                if encoder.failed or is_terminal(event):
                    finished = True
                    break
        finally:
            if not finished:
                logger.info(
                    "Client disconnected from thread %s (request %s)",
                    ctx.thread_id, ctx.request_id,
                )
            channel.close()

    async def _run_turn(
        self,
        ctx: TurnContext,
        graph: TurnGraph,
        message: BaseMessage,
        channel: EventChannel,
    ) -> None:
        logger.info(
            "Turn started (thread=%s, request=%s, graph=%s)",
            ctx.thread_id, ctx.request_id, graph.config,
        )
        try:
            async with self._store.lock(ctx.thread_id):
                memory = ConversationMemory(self._store, ctx.thread_id)
                await memory.load()
                await memory.append(message)
                reply = await graph.run(memory, channel.send)
                await channel.send(EndEvent(
                    thread_id=ctx.thread_id,
                    message=message_to_dict(reply),
                    messages=messages_to_dict(memory.messages),
                ))
        except TurnLimitError as exc:
            logger.warning("Turn aborted for thread %s: %s", ctx.thread_id, exc)
            await channel.send(ErrorEvent(
                message="The assistant needed too many steps to answer. Please rephrase your request.",
            ))
        except ModelError:
            logger.exception("Model call failed for thread %s", ctx.thread_id)
            await channel.send(ErrorEvent(
                message="The language model is unavailable right now. Please try again.",
            ))
        except PersistenceError:
            logger.exception("Could not persist thread %s", ctx.thread_id)
            await channel.send(ErrorEvent(
                message="Your conversation could not be saved. Reload the history and try again.",
            ))
        except Exception:
            logger.exception("Turn failed for thread %s", ctx.thread_id)
            await channel.send(ErrorEvent(message=SAFE_ERROR_MESSAGE))

    async def get_history(self, thread_id: str) -> list[dict]:
        """Stored history as LangChain message dicts (empty for unknown ids)."""
        return messages_to_dict(await self._store.load(thread_id))

    async def wait_idle(self) -> None:
        """Wait for background turns to finish (shutdown and tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
