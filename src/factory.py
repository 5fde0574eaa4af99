"""
factory - Composition root for the toolchat service.

ALL dependency wiring happens here. No other module constructs its own
dependencies. Adapters (CLI, REST) call this factory to get fully
configured services and the executor.

Usage:
    from factory import ServiceFactory
    from infrastructure.config import Settings

    config = Settings.from_env()
    factory = ServiceFactory(config)
    await factory.initialize()  # one-time startup

    executor = factory.get_executor()
    graph = await executor.prepare(ctx)
    async for line in executor.stream_turn(ctx, graph, message):
        ...
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Callable, Optional

from infrastructure.config import Settings
from infrastructure.persistence.connection import AsyncSQLiteConnection
from infrastructure.persistence.migrations import run_migrations
from infrastructure.persistence.checkpoint_repo import SQLiteCheckpointRepository
from infrastructure.persistence.session_repo import SQLiteSessionRepository
from infrastructure.llm.llm_builder import create_chat_model
from domain.exceptions import DomainError
from domain.ports import ChatModelPort
from application.services.sessions import SessionService
from agent.tools.registry import ToolRegistry
from agent.tools.calculator import CalculatorTool
from agent.tools.current_time import CurrentTimeTool
from agent.tools.search import SearchTool
from agent.tools.weather import WeatherTool
from agent.executor import AgentExecutor

logger = logging.getLogger(__name__)


class ServiceFactory:
    """Composition root. Wires all dependencies together.

    Call initialize() once at startup (concurrent callers share the same
    initialization), then fetch services as needed. The checkpoint store,
    tool registry and executor are process-wide and shared by reference.
    """

    def __init__(
        self,
        config: Settings,
        model_factory: Optional[Callable[[str], ChatModelPort]] = None,
    ):
        self._config = config
        self._connection = AsyncSQLiteConnection(config.db_path)
        self._checkpoints = SQLiteCheckpointRepository(self._connection)
        self._model_factory = model_factory or partial(create_chat_model, settings=config)

        self._registry: Optional[ToolRegistry] = None
        self._executor: Optional[AgentExecutor] = None
        self._init_lock = asyncio.Lock()
        self._initialized = False

    @property
    def config(self) -> Settings:
        return self._config

    async def initialize(self) -> None:
        """One-time startup: run migrations, register tools, build the executor."""
        async with self._init_lock:
            if self._initialized:
                return
            logger.info("Initializing ServiceFactory (db=%s)...", self._config.db_path)

            await run_migrations(self._connection)
            logger.info("Database migrations complete")

            self._registry = self._build_registry()
            self._executor = AgentExecutor(
                registry=self._registry,
                store=self._checkpoints,
                model_factory=self._model_factory,
                default_model=self._config.default_model,
                max_iterations=self._config.agent_max_iterations,
                cache_size=self._config.graph_cache_size,
                stream_buffer_size=self._config.stream_buffer_size,
            )

            self._initialized = True
            logger.info("ServiceFactory ready")

    def _build_registry(self) -> ToolRegistry:
        registry = ToolRegistry()
        timeout = self._config.tool_http_timeout
        for tool in (
            CalculatorTool(),
            WeatherTool(
                forecast_url=self._config.weather_api_url,
                geocoding_url=self._config.geocoding_api_url,
                timeout=timeout,
            ),
            CurrentTimeTool(),
            SearchTool(api_url=self._config.search_api_url, timeout=timeout),
        ):
            registry.register_tool(tool, enabled=tool.name in self._config.enabled_tools)

        unknown = set(self._config.enabled_tools) - set(registry.names())
        if unknown:
            logger.warning("ENABLED_TOOLS lists unknown tool(s): %s", ", ".join(sorted(unknown)))
        logger.info(
            "Tool registry ready: %d tool(s), enabled: %s",
            len(registry.names()),
            [n for n in registry.names() if registry.is_enabled(n)],
        )
        return registry

    async def shutdown(self) -> None:
        """Let in-flight turns finish writing their history, then drop cached graphs."""
        if self._executor is not None:
            await self._executor.wait_idle()
            await self._executor.cache.clear()
        logger.info("ServiceFactory shut down")

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_executor(self) -> AgentExecutor:
        self._ensure_initialized()
        return self._executor

    def get_tool_registry(self) -> ToolRegistry:
        self._ensure_initialized()
        return self._registry

    def create_session_service(self) -> SessionService:
        """Create a SessionService (stateless, cheap)."""
        self._ensure_initialized()
        return SessionService(session_repo=SQLiteSessionRepository(self._connection))

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise DomainError(
                "ServiceFactory not initialized. Call await factory.initialize() first."
            )
