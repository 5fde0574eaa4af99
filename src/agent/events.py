"""
agent.events - Turn events and their newline-delimited JSON encoding.

The turn graph emits these dataclasses in the order things happen.
EventStreamEncoder turns each one into a single JSON line; a client can
parse the stream incrementally by splitting on newlines.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Union

logger = logging.getLogger(__name__)

SAFE_ERROR_MESSAGE = "Sorry, something went wrong while processing your message."


@dataclass(frozen=True)
class ChunkEvent:
    """Content fragment streamed by the model."""
    content: str

    def to_wire(self) -> dict[str, Any]:
        return {"type": "chunk", "content": self.content}


@dataclass(frozen=True)
class ToolCallsEvent:
    """Assistant message finalized with tool-call requests."""
    tool_calls: list[dict[str, Any]]

    def to_wire(self) -> dict[str, Any]:
        return {
            "type": "tool_calls",
            "tool_calls": [
                {"name": c["name"], "id": c["id"], "args": c.get("args", {})}
                for c in self.tool_calls
            ],
        }


@dataclass(frozen=True)
class ToolResultEvent:
    name: str
    id: str
    output: Any

    def to_wire(self) -> dict[str, Any]:
        return {"type": "tool_result", "name": self.name, "id": self.id, "output": self.output}


@dataclass(frozen=True)
class ToolErrorEvent:
    name: str
    id: str
    error: str

    def to_wire(self) -> dict[str, Any]:
        return {"type": "tool_error", "name": self.name, "id": self.id, "error": self.error}


@dataclass(frozen=True)
class EndEvent:
    """Turn reached DONE. message and messages are LangChain message dicts."""
    thread_id: str
    message: dict[str, Any]
    messages: list[dict[str, Any]] = field(default_factory=list)
    status: str = "success"

    def to_wire(self) -> dict[str, Any]:
        return {
            "type": "end",
            "status": self.status,
            "thread_id": self.thread_id,
            "message": self.message,
            "messages": self.messages,
        }


@dataclass(frozen=True)
class ErrorEvent:
    """Unrecoverable failure. message is safe to show to the user."""
    message: str = SAFE_ERROR_MESSAGE
    error: str = "internal_error"

    def to_wire(self) -> dict[str, Any]:
        return {"type": "error", "error": self.error, "message": self.message}


TurnEvent = Union[
    ChunkEvent, ToolCallsEvent, ToolResultEvent, ToolErrorEvent, EndEvent, ErrorEvent,
]

TERMINAL_EVENTS = (EndEvent, ErrorEvent)


def is_terminal(event: TurnEvent) -> bool:
    return isinstance(event, TERMINAL_EVENTS)


class EventStreamEncoder:
    """Encodes turn events as NDJSON lines.

    If an event cannot be serialized (including NaN and text that is not
    valid UTF-8), the encoder returns an error line
    instead and marks itself failed; the caller must stop the stream.
    """

    def __init__(self):
        self.failed = False

    def encode(self, event: TurnEvent) -> str:
        try:
            line = json.dumps(event.to_wire(), ensure_ascii=False, allow_nan=False)
            # Lone surrogates survive dumps but not the UTF-8 response body
            line.encode("utf-8")
        except (TypeError, ValueError) as exc:
            logger.error("Could not serialize %s: %s", type(event).__name__, exc)
            self.failed = True
            line = json.dumps(ErrorEvent().to_wire(), ensure_ascii=False)
        return line + "\n"


def decode_line(line: str | bytes) -> dict[str, Any] | None:
    """Parse one wire line. Blank lines yield None."""
    if isinstance(line, bytes):
        line = line.decode("utf-8")
    line = line.strip()
    if not line:
        return None
    return json.loads(line)
