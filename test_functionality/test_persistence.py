"""SQLite message log and session metadata."""
import asyncio
import json

import pytest
from langchain_core.messages import AIMessage, HumanMessage, ToolMessage, messages_to_dict

from domain.entities import Session
from domain.exceptions import PersistenceError
from infrastructure.persistence.checkpoint_repo import SQLiteCheckpointRepository
from infrastructure.persistence.connection import AsyncSQLiteConnection
from infrastructure.persistence.migrations import run_migrations
from infrastructure.persistence.session_repo import SQLiteSessionRepository


@pytest.fixture
async def connection(tmp_path):
    connection = AsyncSQLiteConnection(str(tmp_path / "store.db"))
    await run_migrations(connection)
    return connection


@pytest.fixture
def checkpoints(connection):
    return SQLiteCheckpointRepository(connection)


@pytest.fixture
def sessions(connection):
    return SQLiteSessionRepository(connection)


def sample_turn():
    return [
        HumanMessage(content=[
            {"type": "text", "text": "What is in this picture?"},
            {"type": "image_url", "image_url": {"url": "https://example.com/cat.png"}},
        ]),
        AIMessage(content="", tool_calls=[
            {"name": "calculator", "args": {"expr": "2+2"}, "id": "call_1", "type": "tool_call"},
        ]),
        ToolMessage(content="4", tool_call_id="call_1", name="calculator"),
        AIMessage(content="A cat. Also, 4."),
    ]


async def test_messages_round_trip(checkpoints):
    turn = sample_turn()
    assert await checkpoints.append("t1", turn) == 4

    loaded = await checkpoints.load("t1")
    assert messages_to_dict(loaded) == messages_to_dict(turn)
    assert loaded[1].tool_calls[0]["id"] == "call_1"
    assert loaded[2].tool_call_id == "call_1"


async def test_append_continues_sequence(checkpoints):
    await checkpoints.append("t1", [HumanMessage(content="a")])
    assert await checkpoints.append("t1", [AIMessage(content="b"), HumanMessage(content="c")]) == 3

    rows = await checkpoints.get_by_thread("t1")
    assert [r.seq for r in rows] == [0, 1, 2]
    assert [json.loads(r.message)["data"]["content"] for r in rows] == ["a", "b", "c"]
    assert await checkpoints.count("t1") == 3


async def test_threads_are_isolated(checkpoints):
    await checkpoints.append("t1", [HumanMessage(content="one")])
    await checkpoints.append("t2", [HumanMessage(content="two")])
    await checkpoints.delete("t1")

    assert await checkpoints.load("t1") == []
    assert [m.content for m in await checkpoints.load("t2")] == ["two"]


async def test_history_reads_are_identical(checkpoints):
    await checkpoints.append("t1", sample_turn())
    first = json.dumps(messages_to_dict(await checkpoints.load("t1")))
    second = json.dumps(messages_to_dict(await checkpoints.load("t1")))
    assert first == second


async def test_lock_is_shared_per_thread(checkpoints):
    assert checkpoints.lock("t1") is checkpoints.lock("t1")
    assert checkpoints.lock("t1") is not checkpoints.lock("t2")


async def test_locked_appends_do_not_interleave(checkpoints):
    async def writer(tag):
        async with checkpoints.lock("t1"):
            for i in range(3):
                await checkpoints.append("t1", [HumanMessage(content=f"{tag}{i}")])
                await asyncio.sleep(0)

    await asyncio.gather(writer("a"), writer("b"))
    contents = [m.content for m in await checkpoints.load("t1")]
    assert contents in (["a0", "a1", "a2", "b0", "b1", "b2"], ["b0", "b1", "b2", "a0", "a1", "a2"])


async def test_unusable_database_raises_persistence_error(tmp_path):
    repo = SQLiteCheckpointRepository(AsyncSQLiteConnection(str(tmp_path / "missing" / "x.db")))
    with pytest.raises(PersistenceError):
        await repo.load("t1")


async def test_session_create_is_idempotent(sessions):
    assert await sessions.create(Session(id="s1", name="First"))
    assert not await sessions.create(Session(id="s1", name="Other"))

    stored = await sessions.get("s1")
    assert stored.name == "First"
    assert stored.created_at


async def test_sessions_listed_newest_first(sessions):
    await sessions.create(Session(id="old", name="Old", created_at="2024-01-01T00:00:00"))
    await sessions.create(Session(id="new", name="New", created_at="2024-06-01T00:00:00"))
    assert [s.id for s in await sessions.list_all()] == ["new", "old"]


async def test_rename(sessions):
    await sessions.create(Session(id="s1", name="First"))
    assert await sessions.rename("s1", "Renamed")
    assert (await sessions.get("s1")).name == "Renamed"
    assert not await sessions.rename("missing", "x")


async def test_delete_with_history_removes_both(sessions, checkpoints):
    await sessions.create(Session(id="s1", name="First"))
    await checkpoints.append("s1", sample_turn())
    await checkpoints.append("s2", [HumanMessage(content="keep me")])

    assert await sessions.delete_with_history("s1")

    assert await sessions.get("s1") is None
    assert await checkpoints.load("s1") == []
    assert len(await checkpoints.load("s2")) == 1
    assert not await sessions.delete_with_history("s1")
