"""
agent.tools.base - Tool interfaces and result containers.

Built-in tools inherit from BaseTool and return ToolResult. The registry
stores ToolDescriptors, so any callable with a Pydantic input schema can be
registered as a tool without subclassing.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from langchain_core.messages import ToolMessage
from pydantic import BaseModel


@dataclass
class ToolResult:
    """Result returned by a tool execution.

    output:  What the model and the client see (text or JSON-able structure).
    data:    Structured extras for logging/inspection (not sent to the model).
    """
    output: Any
    data: Any = None


@dataclass
class ToolDescriptor:
    """Registry entry for one tool.

    handler is called with the validated schema fields as keyword
    arguments and may be sync or async.
    """
    name: str
    description: str
    schema: Optional[type[BaseModel]]
    handler: Optional[Callable[..., Any]]
    enabled: bool = True
    options: dict[str, Any] = field(default_factory=dict)

    def to_model_spec(self) -> dict[str, Any]:
        """Function-calling spec offered to the model (OpenAI tool format)."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.schema.model_json_schema(),
            },
        }

    def info(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "enabled": self.enabled,
            "parameters": self.schema.model_json_schema() if self.schema else {},
            "options": self.options,
        }


@dataclass
class ToolOutcome:
    """Outcome of one tool invocation: success with output, or a tool error."""
    name: str
    call_id: str
    ok: bool
    output: Any = None
    error: str = ""

    @classmethod
    def failure(cls, name: str, call_id: str, error: str) -> ToolOutcome:
        return cls(name=name, call_id=call_id, ok=False, error=error)

    @property
    def content(self) -> str:
        """Text form placed in the tool-result message."""
        if not self.ok:
            return f"Error: {self.error}"
        if isinstance(self.output, str):
            return self.output
        return json.dumps(self.output, ensure_ascii=False)

    def to_message(self) -> ToolMessage:
        return ToolMessage(
            content=self.content,
            tool_call_id=self.call_id,
            name=self.name,
            status="success" if self.ok else "error",
        )


class BaseTool(ABC):
    """Abstract base for built-in tools."""

    name: str
    description: str

    @abstractmethod
    async def execute(self, **kwargs) -> ToolResult:
        """Execute the tool with validated arguments."""
        ...

    @abstractmethod
    def get_schema(self) -> type[BaseModel]:
        """Return the Pydantic schema for this tool's input arguments."""
        ...

    @property
    def options(self) -> dict[str, Any]:
        return {}

    def to_descriptor(self, enabled: bool = True) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            schema=self.get_schema(),
            handler=self.execute,
            enabled=enabled,
            options=self.options,
        )
