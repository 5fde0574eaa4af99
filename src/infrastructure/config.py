"""
infrastructure.config - Typed, injectable configuration.

A frozen dataclass that can be constructed from environment or passed
explicitly (tests build it directly, no environment needed).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

APP_VERSION = "0.1.0"

DEFAULT_TOOLS = ("calculator", "weather", "current_time", "search")


def _split_csv(raw: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    """Centralized configuration for the chat agent service.

    No module-level globals. Construct via from_env() or pass explicitly
    in tests.
    """
    project_root: Path = field(default_factory=Path.cwd)

    # Database (sessions table + message log live in the same file)
    db_path: str = "chat_history.db"

    # ── Models ──────────────────────────────────────────────────
    # Model ids have the form "provider:model". An id without a prefix
    # uses llm_provider. Allowed providers: "openai", "groq", "ollama".
    default_model: str = "ollama:llama3.2"
    llm_provider: str = "ollama"
    temperature: float = 0

    # Connection details
    ollama_base_url: str = "http://localhost:11434/"
    openai_api_key: str = ""
    openai_base_url: str = ""
    groq_api_key: str = ""

    # ── Agent ───────────────────────────────────────────────────
    agent_max_iterations: int = 10
    graph_cache_size: int = 10
    stream_buffer_size: int = 64

    # ── Tools ───────────────────────────────────────────────────
    # Registered tools not listed here start disabled.
    enabled_tools: tuple[str, ...] = DEFAULT_TOOLS
    weather_api_url: str = "https://api.open-meteo.com/v1/forecast"
    geocoding_api_url: str = "https://geocoding-api.open-meteo.com/v1/search"
    search_api_url: str = "https://api.duckduckgo.com/"
    tool_http_timeout: float = 10.0

    log_level: str = "INFO"

    @classmethod
    def from_env(cls, project_root: Optional[Path] = None) -> Settings:
        """Build Settings from the environment (and a .env file, if present)."""
        from dotenv import load_dotenv
        load_dotenv()

        root = project_root or Path(__file__).resolve().parent.parent.parent
        db_path = os.getenv("DB_PATH", str(root / "chat_history.db"))

        return cls(
            project_root=root,
            db_path=db_path,
            default_model=os.getenv("DEFAULT_MODEL", "ollama:llama3.2"),
            llm_provider=os.getenv("LLM_PROVIDER", "ollama"),
            temperature=float(os.getenv("LLM_TEMPERATURE", "0")),
            ollama_base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434/"),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            openai_base_url=os.getenv("OPENAI_BASE_URL", ""),
            groq_api_key=os.getenv("GROQ_API_KEY", ""),
            agent_max_iterations=int(os.getenv("AGENT_MAX_ITERATIONS", "10")),
            graph_cache_size=int(os.getenv("GRAPH_CACHE_SIZE", "10")),
            stream_buffer_size=int(os.getenv("STREAM_BUFFER_SIZE", "64")),
            enabled_tools=_split_csv(os.getenv("ENABLED_TOOLS", ",".join(DEFAULT_TOOLS))),
            weather_api_url=os.getenv("WEATHER_API_URL", "https://api.open-meteo.com/v1/forecast"),
            geocoding_api_url=os.getenv(
                "GEOCODING_API_URL", "https://geocoding-api.open-meteo.com/v1/search",
            ),
            search_api_url=os.getenv("SEARCH_API_URL", "https://api.duckduckgo.com/"),
            tool_http_timeout=float(os.getenv("TOOL_HTTP_TIMEOUT", "10.0")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
