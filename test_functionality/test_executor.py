"""Executor: streaming, terminal events, caching, per-session locking."""
import asyncio

import pytest
from langchain_core.messages import AIMessage, HumanMessage

from domain.exceptions import ModelConfigurationError
from domain.models import GraphConfig
from application.context import TurnContext
from agent.cache import GraphCache
from agent.events import decode_line
from agent.executor import AgentExecutor
from agent.tools.calculator import CalculatorTool
from agent.tools.current_time import CurrentTimeTool
from agent.tools.registry import ToolRegistry
from conftest import ScriptedChatModel, reply_with_tools, tool_call


@pytest.fixture
def registry():
    registry = ToolRegistry()
    registry.register_tool(CalculatorTool())
    registry.register_tool(CurrentTimeTool())
    return registry


def make_executor(registry, store, model, **kwargs):
    options = dict(default_model="fake:scripted", max_iterations=5, cache_size=2, stream_buffer_size=2)
    options.update(kwargs)
    built = []

    def factory(model_id):
        if model_id.startswith("bad:"):
            raise ModelConfigurationError(f"Unsupported model provider: {model_id}")
        built.append(model_id)
        return model

    executor = AgentExecutor(registry=registry, store=store, model_factory=factory, **options)
    executor.built = built
    return executor


async def collect(executor, ctx, text):
    graph = await executor.prepare(ctx)
    lines = [line async for line in executor.stream_turn(ctx, graph, HumanMessage(content=text))]
    return [decode_line(line) for line in lines]


async def test_stream_ends_with_end_event(registry, store):
    model = ScriptedChatModel([
        reply_with_tools(tool_call("calculator", {"expr": "2+2"}, "c1")),
        AIMessage(content="It is 4"),
    ])
    executor = make_executor(registry, store, model)
    ctx = TurnContext(thread_id="t1", tool_names=["calculator"])

    events = await collect(executor, ctx, "2+2")

    assert [e["type"] for e in events] == ["tool_calls", "tool_result", "chunk", "chunk", "chunk", "end"]
    end = events[-1]
    assert end["thread_id"] == "t1"
    assert end["message"]["data"]["content"] == "It is 4"
    assert [m["type"] for m in end["messages"]] == ["human", "ai", "tool", "ai"]
    assert end["messages"] == await executor.get_history("t1")


async def test_model_error_becomes_error_event(registry, store):
    model = ScriptedChatModel([RuntimeError("401 unauthorized")])
    executor = make_executor(registry, store, model)

    events = await collect(executor, TurnContext(thread_id="t1"), "hi")

    assert events[-1]["type"] == "error"
    assert "401" not in events[-1]["message"]
    assert [m["type"] for m in await executor.get_history("t1")] == ["human"]


async def test_persistence_error_becomes_error_event(registry, store):
    store.fail_after = 1
    executor = make_executor(registry, store, ScriptedChatModel())

    events = await collect(executor, TurnContext(thread_id="t1"), "hi")

    assert events[-1]["type"] == "error"
    assert "saved" in events[-1]["message"]


async def test_turn_limit_becomes_error_event(registry, store):
    model = ScriptedChatModel([
        lambda history: reply_with_tools(tool_call("calculator", {"expr": "1"}, f"c{len(history)}")),
    ])
    executor = make_executor(registry, store, model, max_iterations=2)

    events = await collect(executor, TurnContext(thread_id="t1", tool_names=["calculator"]), "go")

    assert events[-1]["type"] == "error"
    assert sum(e["type"] == "tool_calls" for e in events) == 2


async def test_sequential_turns_grow_history_in_order(registry, store):
    model = ScriptedChatModel([AIMessage(content="ok")])
    executor = make_executor(registry, store, model)
    ctx = TurnContext(thread_id="t1")

    sizes = []
    for text in ["one", "two", "three"]:
        await collect(executor, ctx, text)
        sizes.append(len(await executor.get_history("t1")))

    assert sizes == [2, 4, 6]
    history = await executor.get_history("t1")
    assert [m["data"]["content"] for m in history if m["type"] == "human"] == ["one", "two", "three"]


async def test_concurrent_turns_on_one_session_do_not_interleave(registry, store):
    model = ScriptedChatModel([AIMessage(content="a fairly long answer with many words")])
    executor = make_executor(registry, store, model)

    await asyncio.gather(
        collect(executor, TurnContext(thread_id="t1"), "first"),
        collect(executor, TurnContext(thread_id="t1"), "second"),
    )

    types = [m["type"] for m in await executor.get_history("t1")]
    assert types == ["human", "ai", "human", "ai"]


async def test_disconnect_stops_stream_but_turn_completes(registry, store):
    model = ScriptedChatModel([AIMessage(content="word " * 20)])
    executor = make_executor(registry, store, model, stream_buffer_size=1)
    ctx = TurnContext(thread_id="t1")
    graph = await executor.prepare(ctx)

    stream = executor.stream_turn(ctx, graph, HumanMessage(content="talk a lot"))
    first = decode_line(await stream.__anext__())
    await stream.aclose()
    await executor.wait_idle()

    assert first["type"] == "chunk"
    assert executor.pending_turns == 0
    assert [m["type"] for m in await executor.get_history("t1")] == ["human", "ai"]


async def test_unknown_thread_has_empty_history(registry, store):
    executor = make_executor(registry, store, ScriptedChatModel())
    assert await executor.get_history("never-seen") == []


async def test_graph_reused_for_same_configuration(registry, store):
    executor = make_executor(registry, store, ScriptedChatModel())

    a = await executor.prepare(TurnContext(tool_names=["calculator", "current_time"]))
    b = await executor.prepare(TurnContext(tool_names=["current_time", "calculator", "nope"]))

    assert a is b
    assert executor.built == ["fake:scripted"]


async def test_disabled_tool_changes_configuration(registry, store):
    executor = make_executor(registry, store, ScriptedChatModel())

    with_tool = await executor.prepare(TurnContext(tool_names=["calculator"]))
    registry.disable("calculator")
    without = await executor.prepare(TurnContext(tool_names=["calculator"]))

    assert with_tool.tool_names == ("calculator",)
    assert without.tool_names == ()


async def test_bad_model_raises_before_streaming(registry, store):
    executor = make_executor(registry, store, ScriptedChatModel())
    with pytest.raises(ModelConfigurationError):
        await executor.prepare(TurnContext(model_id="bad:model"))
    assert len(executor.cache) == 0


async def test_graph_cache_is_fifo():
    cache = GraphCache(capacity=2)
    a, b, c = (GraphConfig.for_request(m, []) for m in ("a", "b", "c"))

    await cache.get_or_create(a, lambda: "A")
    await cache.get_or_create(b, lambda: "B")
    # A hit does not refresh a
    assert await cache.get_or_create(a, lambda: "A2") == "A"
    await cache.get_or_create(c, lambda: "C")

    assert cache.keys() == [b, c]
    assert a not in cache


async def test_graph_cache_concurrent_lookups_build_once():
    cache = GraphCache(capacity=4)
    config = GraphConfig.for_request("m", ["x"])
    builds = []

    def build():
        builds.append(1)
        return object()

    results = await asyncio.gather(*(cache.get_or_create(config, build) for _ in range(10)))
    assert len(builds) == 1
    assert all(r is results[0] for r in results)


async def test_shutdown_drops_cached_graphs(service_factory):
    await service_factory.initialize()
    executor = service_factory.get_executor()
    await executor.prepare(TurnContext(tool_names=["calculator"]))
    assert len(executor.cache) == 1

    await service_factory.shutdown()
    assert len(executor.cache) == 0


async def test_ensure_session_marks_only_the_first_turn_new(ready_factory):
    sessions = ready_factory.create_session_service()
    first = TurnContext(thread_id="t-new")
    second = TurnContext(thread_id="t-new")

    assert await sessions.ensure_session(first, HumanMessage(content="hello"))
    assert first.is_new_session
    assert not await sessions.ensure_session(second, HumanMessage(content="again"))
    assert not second.is_new_session
