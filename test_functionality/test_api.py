"""REST surface: streaming chat, history, sessions, tools."""
import json

import pytest
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessage

from adapters.rest.app import create_app
from conftest import reply_with_tools, tool_call


@pytest.fixture
def client(service_factory):
    with TestClient(create_app(service_factory)) as client:
        yield client


def stream_events(response):
    return [json.loads(line) for line in response.text.splitlines() if line.strip()]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_calculator_scenario(client, scripted_model):
    scripted_model.replies = [
        reply_with_tools(tool_call("calculator", {"expr": "2+2"}, "call_1")),
        AIMessage(content="2 + 2 = 4"),
    ]

    response = client.post("/api/chat", json={"message": "2+2", "tools": ["calculator"]})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/x-ndjson")
    events = stream_events(response)
    kinds = [e["type"] for e in events]
    assert kinds[0] == "tool_calls"
    assert events[0]["tool_calls"][0]["name"] == "calculator"
    assert events[1] == {"type": "tool_result", "name": "calculator", "id": "call_1", "output": "4"}
    assert set(kinds[2:-1]) == {"chunk"}
    assert kinds[-1] == "end"
    assert events[-1]["thread_id"] == response.headers["x-thread-id"]


def test_missing_message_is_400(client):
    response = client.post("/api/chat", json={"tools": ["calculator"]})
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"
    assert not response.headers["content-type"].startswith("application/x-ndjson")


@pytest.mark.parametrize("message", [None, 42, "", [{"type": "video"}]])
def test_malformed_message_is_400(client, message):
    response = client.post("/api/chat", json={"message": message})
    assert response.status_code == 400


def test_non_json_body_is_400(client):
    response = client.post("/api/chat", content=b"not json", headers={"content-type": "application/json"})
    assert response.status_code == 400


def test_unknown_model_provider_is_400(client):
    response = client.post("/api/chat", json={"message": "hi", "model": "mystery:model"})
    assert response.status_code == 400
    assert "Unsupported model provider" in response.json()["detail"]
    assert client.get("/api/chat/sessions").json()["sessions"] == []


def test_history_matches_end_event_and_is_stable(client):
    response = client.post("/api/chat", json={"message": "hello", "thread_id": "abc"})
    end = stream_events(response)[-1]

    first = client.get("/api/chat", params={"thread_id": "abc"})
    second = client.get("/api/chat", params={"thread_id": "abc"})

    assert first.status_code == 200
    assert first.content == second.content
    assert first.json()["history"] == end["messages"]
    assert [m["type"] for m in end["messages"]] == ["human", "ai"]


def test_history_of_unknown_thread_is_empty(client):
    response = client.get("/api/chat", params={"thread_id": "nobody"})
    assert response.status_code == 200
    assert response.json() == {"thread_id": "nobody", "history": []}


def test_service_descriptor_without_thread_id(client):
    body = client.get("/api/chat").json()
    assert "POST /api/chat" in body["endpoints"]
    assert body["version"]


def test_session_created_on_first_message(client):
    client.post("/api/chat", json={"message": "Plan a trip to Kyoto in spring", "thread_id": "s1"})
    client.post("/api/chat", json={"message": "Second message", "thread_id": "s1"})

    sessions = client.get("/api/chat/sessions").json()["sessions"]
    assert [(s["id"], s["name"]) for s in sessions] == [("s1", "Plan a trip to Kyoto in spring")]


def test_rename_and_delete_session(client):
    client.post("/api/chat", json={"message": "hi", "thread_id": "s1"})

    assert client.patch("/api/chat/sessions", json={"id": "s1", "name": "Greetings"}).json() == {"success": True}
    assert client.get("/api/chat/sessions").json()["sessions"][0]["name"] == "Greetings"

    response = client.request("DELETE", "/api/chat/sessions", json={"id": "s1"})
    assert response.json() == {"success": True}
    assert client.get("/api/chat/sessions").json()["sessions"] == []
    assert client.get("/api/chat", params={"thread_id": "s1"}).json()["history"] == []


def test_rename_unknown_session_is_404(client):
    response = client.patch("/api/chat/sessions", json={"id": "ghost", "name": "x"})
    assert response.status_code == 404


def test_list_tools(client):
    tools = {t["name"]: t for t in client.get("/api/tools").json()["tools"]}
    assert set(tools) == {"calculator", "weather", "current_time", "search"}
    assert all(t["enabled"] for t in tools.values())
    assert "expr" in tools["calculator"]["parameters"]["properties"]


def test_disabled_tool_is_never_offered(client, scripted_model):
    scripted_model.replies = [
        reply_with_tools(tool_call("calculator", {"expr": "2+2"}, "c1"), content="four"),
    ]
    assert client.post("/api/tools/calculator/disable").json()["enabled"] is False

    events = stream_events(client.post("/api/chat", json={"message": "2+2", "tools": ["calculator"]}))

    assert [e["type"] for e in events] == ["chunk", "end"]
    assert client.post("/api/tools/missing/enable").status_code == 404


def test_lone_surrogate_message_is_400(client):
    client.post("/api/chat", json={"message": "hello", "thread_id": "u1"})

    response = client.post(
        "/api/chat",
        content=b'{"message": "hi \\ud800", "thread_id": "u1"}',
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"
    history = client.get("/api/chat", params={"thread_id": "u1"}).json()["history"]
    assert [m["type"] for m in history] == ["human", "ai"]


def test_unexpected_failure_before_streaming_is_error_shaped(service_factory, monkeypatch):
    from application.services.sessions import SessionService

    async def broken(self, ctx, first_message):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(SessionService, "ensure_session", broken)
    with TestClient(create_app(service_factory), raise_server_exceptions=False) as client:
        response = client.post("/api/chat", json={"message": "hi"})

    assert response.status_code == 500
    assert response.json()["error"] == "internal_error"
    assert "disk on fire" not in response.text
