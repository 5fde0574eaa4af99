"""
Shared FastAPI dependencies.

- get_factory(): returns the initialized ServiceFactory (set at startup).
- get_session_service(), get_executor(): per-request shortcuts.
"""

from __future__ import annotations

from fastapi import Depends

from factory import ServiceFactory
from agent.executor import AgentExecutor
from application.services.sessions import SessionService

# Module-level reference set by app lifespan
_factory: ServiceFactory | None = None


def set_factory(factory: ServiceFactory | None) -> None:
    global _factory
    _factory = factory


def get_factory() -> ServiceFactory:
    if _factory is None:
        raise RuntimeError("ServiceFactory not initialized.")
    return _factory


def get_executor(factory: ServiceFactory = Depends(get_factory)) -> AgentExecutor:
    return factory.get_executor()


def get_session_service(factory: ServiceFactory = Depends(get_factory)) -> SessionService:
    return factory.create_session_service()
