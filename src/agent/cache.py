"""
agent.cache - Process-wide cache of compiled turn graphs.

Keyed by GraphConfig (model id + sorted tool names). Bounded with FIFO
eviction: lookups do not refresh an entry's position.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from typing import Callable, Generic, TypeVar

from domain.models import GraphConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GraphCache(Generic[T]):
    """FIFO cache guarded by an asyncio lock."""

    def __init__(self, capacity: int = 10):
        self._capacity = max(1, capacity)
        self._entries: OrderedDict[GraphConfig, T] = OrderedDict()
        self._lock = asyncio.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, config: GraphConfig) -> bool:
        return config in self._entries

    def keys(self) -> list[GraphConfig]:
        """Cached configurations, oldest first."""
        return list(self._entries.keys())

    async def get_or_create(self, config: GraphConfig, build: Callable[[], T]) -> T:
        """Return the cached graph for config, building it on a miss.

        A failing build leaves the cache unchanged.
        """
        async with self._lock:
            graph = self._entries.get(config)
            if graph is not None:
                logger.debug("Graph cache hit: %s", config)
                return graph

            graph = build()
            self._entries[config] = graph
            logger.info("Compiled turn graph: %s", config)

            while len(self._entries) > self._capacity:
                evicted, _ = self._entries.popitem(last=False)
                logger.info("Evicted turn graph: %s", evicted)
            return graph

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()
