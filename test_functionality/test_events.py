import asyncio
import json

from agent.channel import EventChannel
from agent.events import (
    ChunkEvent,
    EndEvent,
    ErrorEvent,
    EventStreamEncoder,
    ToolCallsEvent,
    ToolErrorEvent,
    ToolResultEvent,
    decode_line,
    is_terminal,
)


def test_each_event_is_one_json_line():
    encoder = EventStreamEncoder()
    events = [
        ChunkEvent(content="Hel"),
        ToolCallsEvent(tool_calls=[{"name": "calculator", "id": "c1", "args": {"expr": "2+2"}, "type": "tool_call"}]),
        ToolResultEvent(name="calculator", id="c1", output="4"),
        ToolErrorEvent(name="weather", id="c2", error="City not found"),
        EndEvent(thread_id="t1", message={"type": "ai"}, messages=[]),
        ErrorEvent(message="Try again"),
    ]
    lines = [encoder.encode(e) for e in events]

    assert all(line.endswith("\n") and line.count("\n") == 1 for line in lines)
    decoded = [json.loads(line) for line in lines]
    assert [d["type"] for d in decoded] == [
        "chunk", "tool_calls", "tool_result", "tool_error", "end", "error",
    ]
    assert decoded[1]["tool_calls"] == [{"name": "calculator", "id": "c1", "args": {"expr": "2+2"}}]
    assert decoded[2] == {"type": "tool_result", "name": "calculator", "id": "c1", "output": "4"}
    assert decoded[4]["status"] == "success"
    assert decoded[5] == {"type": "error", "error": "internal_error", "message": "Try again"}
    assert not encoder.failed


def test_newlines_in_content_stay_inside_the_record():
    line = EventStreamEncoder().encode(ChunkEvent(content="a\nb"))
    assert line.count("\n") == 1
    assert decode_line(line)["content"] == "a\nb"


def test_unserializable_event_becomes_error():
    encoder = EventStreamEncoder()
    line = encoder.encode(ToolResultEvent(name="x", id="c1", output={1, 2}))
    assert encoder.failed
    assert decode_line(line)["type"] == "error"


def test_lone_surrogate_becomes_error_line():
    encoder = EventStreamEncoder()
    line = encoder.encode(EndEvent(
        thread_id="t1",
        message={"type": "ai", "data": {"content": "ok"}},
        messages=[{"type": "human", "data": {"content": "hi \ud800"}}],
    ))
    assert encoder.failed
    line.encode("utf-8")
    assert decode_line(line) == {"type": "error", "error": "internal_error", "message": ErrorEvent().message}


def test_non_finite_numbers_become_error_line():
    encoder = EventStreamEncoder()
    line = encoder.encode(ToolResultEvent(name="x", id="c1", output=float("nan")))
    assert encoder.failed
    assert "NaN" not in line
    assert decode_line(line)["type"] == "error"


def test_non_ascii_text_is_kept_readable():
    line = EventStreamEncoder().encode(ChunkEvent(content="Zürich 22°C"))
    assert "Zürich 22°C" in line


def test_decode_line_skips_blank():
    assert decode_line(b"  \n") is None
    assert decode_line(b'{"type": "chunk", "content": "x"}\n') == {"type": "chunk", "content": "x"}


def test_terminal_events():
    assert is_terminal(EndEvent(thread_id="t", message={}))
    assert is_terminal(ErrorEvent())
    assert not is_terminal(ChunkEvent(content="x"))


async def test_channel_preserves_order():
    channel = EventChannel(maxsize=8)
    for i in range(3):
        await channel.send(ChunkEvent(content=str(i)))
    received = [(await channel.receive()).content for _ in range(3)]
    assert received == ["0", "1", "2"]


async def test_channel_applies_backpressure():
    channel = EventChannel(maxsize=1)
    await channel.send(ChunkEvent(content="a"))
    blocked = asyncio.create_task(channel.send(ChunkEvent(content="b")))
    await asyncio.sleep(0.01)
    assert not blocked.done()

    assert (await channel.receive()).content == "a"
    assert await asyncio.wait_for(blocked, timeout=1)
    assert (await channel.receive()).content == "b"


async def test_close_releases_blocked_sender_and_drops_later_events():
    channel = EventChannel(maxsize=1)
    await channel.send(ChunkEvent(content="a"))
    blocked = asyncio.create_task(channel.send(ChunkEvent(content="b")))
    await asyncio.sleep(0.01)

    channel.close()
    await asyncio.wait_for(blocked, timeout=1)
    assert channel.closed
    assert await channel.send(ChunkEvent(content="c")) is False
    assert channel.dropped >= 2
