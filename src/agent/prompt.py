"""
agent.prompt - System prompt for the tool-calling assistant.

Built per graph from the tools the graph is bound to. The prompt is
prepended to every model call and never stored in the message log.
"""

from __future__ import annotations

from typing import Sequence

from agent.tools.base import ToolDescriptor

_BASE_PROMPT = (
    "You are a helpful assistant. Answer clearly and concisely. "
    "Format answers in Markdown when it helps readability."
)


def build_system_prompt(tools: Sequence[ToolDescriptor]) -> str:
    """Build the system prompt, listing the tools available for this turn.

    Args:
        tools: Descriptors bound to the graph (may be empty).

    Returns:
        The system prompt text.
    """
    if not tools:
        return _BASE_PROMPT

    tool_lines = "\n".join(f"- {t.name}: {t.description}" for t in tools)
    return (
        f"{_BASE_PROMPT}\n\n"
        "You can call the following tools:\n"
        f"{tool_lines}\n\n"
        "Call a tool whenever it gives a more reliable answer than your own "
        "knowledge (arithmetic, live data, the current time). If a tool "
        "returns an error, explain the problem to the user or try again with "
        "corrected arguments. Never invent tool results."
    )
