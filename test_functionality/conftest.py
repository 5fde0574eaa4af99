"""
Shared fixtures: a scripted chat model, an in-memory message store,
settings pointing at a temporary SQLite database.
"""
import asyncio
import os
import re
import sys
import weakref

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from langchain_core.messages import AIMessage

from domain.exceptions import ModelError
from domain.models import ModelDelta, ModelFinal
from infrastructure.config import Settings
from infrastructure.llm.llm_builder import create_chat_model
from factory import ServiceFactory


def tool_call(name, args, call_id):
    return {"name": name, "args": args, "id": call_id, "type": "tool_call"}


def reply_with_tools(*calls, content=""):
    return AIMessage(content=content, tool_calls=list(calls))


class ScriptedChatModel:
    """Model port fake that plays back a fixed list of replies.

    Each reply is an AIMessage, an exception (raised as ModelError), or a
    callable taking the history and returning an AIMessage. The last
    reply repeats once the script runs out.
    """

    def __init__(self, replies=None, model_id="fake:scripted"):
        self.model_id = model_id
        self.replies = list(replies or [AIMessage(content="Hello there!")])
        self.calls = []
        self.bound_tools = None

    def bind_tools(self, tools):
        self.bound_tools = [t["function"]["name"] for t in tools]
        return self

    def _next_reply(self, history):
        self.calls.append(list(history))
        index = min(len(self.calls) - 1, len(self.replies) - 1)
        reply = self.replies[index]
        if isinstance(reply, Exception):
            raise ModelError(str(reply))
        if callable(reply):
            reply = reply(history)
        return reply

    async def invoke(self, history):
        return self._next_reply(history)

    async def stream_invoke(self, history):
        reply = self._next_reply(history)
        for piece in re.findall(r"\S+\s*", reply.content if isinstance(reply.content, str) else ""):
            await asyncio.sleep(0)
            yield ModelDelta(content=piece)
        yield ModelFinal(message=reply)


class InMemoryStore:
    """ConversationStore fake backed by a dict."""

    def __init__(self):
        self.threads = {}
        self._locks = weakref.WeakValueDictionary()
        self.fail_after = None

    def lock(self, thread_id):
        lock = self._locks.get(thread_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[thread_id] = lock
        return lock

    async def load(self, thread_id):
        return list(self.threads.get(thread_id, []))

    async def append(self, thread_id, messages):
        from domain.exceptions import PersistenceError
        log = self.threads.setdefault(thread_id, [])
        if self.fail_after is not None and len(log) + len(messages) > self.fail_after:
            raise PersistenceError("disk full")
        log.extend(messages)
        return len(log)

    async def delete(self, thread_id):
        self.threads.pop(thread_id, None)


@pytest.fixture
def scripted_model():
    return ScriptedChatModel()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        project_root=tmp_path,
        db_path=str(tmp_path / "test_chat.db"),
        default_model="fake:scripted",
        agent_max_iterations=5,
        graph_cache_size=3,
        stream_buffer_size=4,
    )


@pytest.fixture
def model_factory(scripted_model, settings):
    """Scripted model for "fake:*" ids, the real builder for anything else."""
    def _factory(model_id):
        if model_id.startswith("fake:"):
            return scripted_model
        return create_chat_model(model_id, settings)
    return _factory


@pytest.fixture
def service_factory(settings, model_factory):
    """Uninitialized factory (the REST lifespan initializes it)."""
    return ServiceFactory(settings, model_factory=model_factory)


@pytest.fixture
async def ready_factory(service_factory):
    await service_factory.initialize()
    yield service_factory
    await service_factory.shutdown()
