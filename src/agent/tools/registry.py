"""
agent.tools.registry - Tool registration, discovery, and invocation.

Central registry mapping tool names to descriptors. Disabling a tool keeps
its descriptor but excludes it from resolution and invocation. Invocation
never raises: every failure comes back as a tool-error outcome.
"""

from __future__ import annotations

import inspect
import json
import logging
from typing import Any, Iterable, Optional

from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from domain.exceptions import ValidationError
from agent.tools.base import BaseTool, ToolDescriptor, ToolOutcome, ToolResult

logger = logging.getLogger(__name__)


def validate_descriptor(descriptor: ToolDescriptor) -> None:
    """Raise ValidationError unless the descriptor is complete."""
    if not isinstance(descriptor.name, str) or not descriptor.name.strip():
        raise ValidationError("Tool descriptor requires a name")
    label = descriptor.name
    if not isinstance(descriptor.description, str) or not descriptor.description.strip():
        raise ValidationError(f"Tool '{label}' requires a description")
    schema = descriptor.schema
    if not (isinstance(schema, type) and issubclass(schema, BaseModel)):
        raise ValidationError(f"Tool '{label}' requires a Pydantic input schema")
    if not callable(descriptor.handler):
        raise ValidationError(f"Tool '{label}' requires a callable handler")
    if not isinstance(descriptor.enabled, bool):
        raise ValidationError(f"Tool '{label}' enabled flag must be a boolean")


class ToolRegistry:
    """Manages tool registration and invocation."""

    def __init__(self):
        self._tools: dict[str, ToolDescriptor] = {}

    def register(self, descriptor: ToolDescriptor) -> None:
        """Register a descriptor by name. Last write wins."""
        validate_descriptor(descriptor)
        if descriptor.name in self._tools:
            logger.info("Replacing registered tool: %s", descriptor.name)
        self._tools[descriptor.name] = descriptor
        logger.debug("Registered tool: %s (enabled=%s)", descriptor.name, descriptor.enabled)

    def register_tool(self, tool: BaseTool, enabled: bool = True) -> None:
        """Register a BaseTool instance."""
        self.register(tool.to_descriptor(enabled=enabled))

    def get(self, name: str) -> Optional[ToolDescriptor]:
        return self._tools.get(name)

    def all(self) -> list[ToolDescriptor]:
        """Return all registered descriptors, enabled or not."""
        return list(self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools.keys())

    def enable(self, name: str) -> None:
        """Enable a tool. Unknown names are ignored."""
        descriptor = self._tools.get(name)
        if descriptor is not None:
            descriptor.enabled = True
            logger.info("Enabled tool: %s", name)

    def disable(self, name: str) -> None:
        """Disable a tool. Unknown names are ignored."""
        descriptor = self._tools.get(name)
        if descriptor is not None:
            descriptor.enabled = False
            logger.info("Disabled tool: %s", name)

    def is_enabled(self, name: str) -> bool:
        descriptor = self._tools.get(name)
        return descriptor is not None and descriptor.enabled

    def resolve(self, names: Optional[Iterable[str]]) -> list[ToolDescriptor]:
        """Return enabled descriptors for *names*, in request order.

        Unknown and disabled names are skipped with a warning; duplicates
        are dropped.
        """
        resolved: list[ToolDescriptor] = []
        seen: set[str] = set()
        for name in names or []:
            if name in seen:
                continue
            seen.add(name)
            descriptor = self._tools.get(name)
            if descriptor is None:
                logger.warning("Tool does not exist: %s", name)
                continue
            if not descriptor.enabled:
                logger.warning("Tool is disabled: %s", name)
                continue
            resolved.append(descriptor)
        logger.debug("Resolved %d of %d requested tool(s)", len(resolved), len(seen))
        return resolved

    def tool_info(self) -> list[dict[str, Any]]:
        return [d.info() for d in self._tools.values()]

    async def invoke(
        self, name: str, args: Optional[dict[str, Any]], call_id: str = "",
    ) -> ToolOutcome:
        """Validate args, run the handler, and capture any failure.

        Returns a ToolOutcome; never raises for tool-level problems.
        """
        descriptor = self._tools.get(name)
        if descriptor is None:
            return ToolOutcome.failure(name, call_id, f"Tool '{name}' is not registered")
        if not descriptor.enabled:
            return ToolOutcome.failure(name, call_id, f"Tool '{name}' is disabled")

        try:
            parsed = descriptor.schema.model_validate(args or {})
        except SchemaValidationError as exc:
            logger.warning("Invalid arguments for tool '%s': %s", name, exc)
            return ToolOutcome.failure(name, call_id, f"Invalid arguments: {exc}")

        logger.info("Invoking tool: %s (call_id=%s)", name, call_id)
        try:
            result = descriptor.handler(**parsed.model_dump())
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            logger.warning("Tool '%s' failed: %s", name, exc, exc_info=True)
            return ToolOutcome.failure(name, call_id, f"{type(exc).__name__}: {exc}")

        output = result.output if isinstance(result, ToolResult) else result
        if output is None:
            output = ""
        try:
            json.dumps(output, allow_nan=False)
        except (TypeError, ValueError) as exc:
            logger.warning("Tool '%s' produced non-serializable output: %s", name, exc)
            return ToolOutcome.failure(name, call_id, f"Invalid tool output: {exc}")

        return ToolOutcome(name=name, call_id=call_id, ok=True, output=output)
