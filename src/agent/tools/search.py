"""
agent.tools.search - Web search via the DuckDuckGo Instant Answer API.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import requests
from pydantic import BaseModel, Field

from domain.exceptions import ToolExecutionError
from agent.tools.base import BaseTool, ToolResult

logger = logging.getLogger(__name__)


class SearchInput(BaseModel):
    """Input schema for the search tool."""
    query: str = Field(description="The search query")
    max_results: int = Field(default=5, ge=1, le=10, description="Maximum number of results")


class SearchTool(BaseTool):
    """Look up a topic on the web."""

    name = "search"
    description = (
        "Search the web for facts, definitions and recent information. "
        "Returns a short summary and related links."
    )

    def __init__(self, api_url: str = "https://api.duckduckgo.com/", timeout: float = 10.0):
        self._api_url = api_url
        self._timeout = timeout

    @property
    def options(self) -> dict[str, Any]:
        return {"api_url": self._api_url, "timeout": self._timeout}

    def get_schema(self) -> type[BaseModel]:
        return SearchInput

    async def execute(self, query: str = "", max_results: int = 5, **kwargs) -> ToolResult:
        if not query.strip():
            raise ToolExecutionError("Search query is required")

        loop = asyncio.get_running_loop()
        payload = await loop.run_in_executor(None, self._call_api, query.strip())
        results = _extract_results(payload, max_results)

        if not results:
            return ToolResult(output=f"No results found for '{query}'.", data=[])

        lines = [f"Search results for '{query}':"]
        for i, item in enumerate(results, 1):
            line = f"{i}. {item['title']}"
            if item["url"]:
                line += f" ({item['url']})"
            lines.append(line)
        return ToolResult(output="\n".join(lines), data=results)

    def _call_api(self, query: str) -> dict[str, Any]:
        """Synchronous HTTP call to the search API (runs in thread pool)."""
        logger.info("Searching: %s", query[:80])
        try:
            response = requests.get(
                self._api_url,
                params={"q": query, "format": "json", "no_html": 1, "skip_disambig": 1},
                timeout=self._timeout,
            )
        except requests.exceptions.Timeout:
            raise ToolExecutionError(f"Search service timed out after {self._timeout}s")
        except requests.exceptions.RequestException as e:
            raise ToolExecutionError(f"Search service unreachable: {e}") from e

        if not response.ok:
            raise ToolExecutionError(
                f"Search service returned HTTP {response.status_code}: {response.text[:200]}"
            )
        return response.json()


def _extract_results(payload: dict[str, Any], limit: int) -> list[dict[str, str]]:
    """Flatten the abstract and related topics into {title, url} items."""
    results: list[dict[str, str]] = []
    if payload.get("AbstractText"):
        title = payload["AbstractText"]
        if payload.get("Heading"):
            title = f"{payload['Heading']}: {title}"
        results.append({"title": title, "url": payload.get("AbstractURL", "")})

    topics = list(payload.get("RelatedTopics") or [])
    while topics and len(results) < limit:
        topic = topics.pop(0)
        if "Topics" in topic:
            # Grouped topics: expand in place
            topics[:0] = topic["Topics"]
            continue
        if topic.get("Text"):
            results.append({"title": topic["Text"], "url": topic.get("FirstURL", "")})
    return results[:limit]
