"""
agent.tools.current_time - Current date and time in a given timezone.
"""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field

from domain.exceptions import ToolExecutionError
from agent.tools.base import BaseTool, ToolResult


class CurrentTimeInput(BaseModel):
    """Input schema for the current_time tool."""
    timezone: str = Field(
        default="UTC",
        description="IANA timezone name, e.g. 'Europe/Paris' or 'Asia/Shanghai'",
    )


class CurrentTimeTool(BaseTool):
    """Report the current date and time."""

    name = "current_time"
    description = (
        "Get the current date and time. "
        "Pass an IANA timezone name to get local time somewhere specific."
    )

    def __init__(self, clock=None):
        # clock(tz) -> aware datetime; injectable for tests
        self._clock = clock or (lambda tz: datetime.now(tz))

    def get_schema(self) -> type[BaseModel]:
        return CurrentTimeInput

    async def execute(self, timezone: str = "UTC", **kwargs) -> ToolResult:
        try:
            tz = ZoneInfo(timezone or "UTC")
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ToolExecutionError(f"Unknown timezone: {timezone!r}") from exc

        now = self._clock(tz)
        return ToolResult(
            output=f"{now:%Y-%m-%d %H:%M:%S} {timezone} ({now:%A})",
            data={"iso": now.isoformat(), "timezone": timezone},
        )
