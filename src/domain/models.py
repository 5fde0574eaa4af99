"""
domain.models - Value objects shared across layers.

These are immutable data containers with no business logic and no
dependencies on infrastructure (no LangChain, no SQLite).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


# ---------------------------------------------------------------------------
# Turn-graph configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GraphConfig:
    """Model + enabled tool set a turn graph is compiled for.

    Used as the graph cache key, so tool_names is normalized to a sorted,
    de-duplicated tuple by for_request().
    """
    model_id: str
    tool_names: tuple[str, ...] = ()

    @classmethod
    def for_request(cls, model_id: str, tool_names: list[str] | tuple[str, ...]) -> GraphConfig:
        return cls(model_id=model_id, tool_names=tuple(sorted(set(tool_names))))

    @property
    def has_tools(self) -> bool:
        return bool(self.tool_names)

    def __str__(self) -> str:
        return f"{self.model_id}-{','.join(self.tool_names)}"


# ---------------------------------------------------------------------------
# Streaming model output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModelDelta:
    """A content fragment streamed by the model."""
    content: str


@dataclass(frozen=True)
class ModelFinal:
    """Terminal item of a model stream.

    message is the complete assistant message (an AIMessage), carrying
    the requested tool calls, if any.
    """
    message: Any
