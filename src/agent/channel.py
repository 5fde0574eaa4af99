"""
agent.channel - Bounded hand-off between a running turn and the HTTP response.

The turn task sends events; the response generator receives them. When
the buffer is full the sender waits, so a slow client slows the turn
down instead of growing memory. Once the receiver goes away the channel
is closed and every further send is dropped.
"""

from __future__ import annotations

import asyncio
import logging

from agent.events import TurnEvent

logger = logging.getLogger(__name__)


class EventChannel:
    """Single-producer, single-consumer bounded event queue."""

    def __init__(self, maxsize: int = 64):
        self._queue: asyncio.Queue[TurnEvent] = asyncio.Queue(maxsize=max(1, maxsize))
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, event: TurnEvent) -> bool:
        """Queue an event. Returns False if the channel is closed."""
        if self._closed:
            self.dropped += 1
            return False
        await self._queue.put(event)
        return True

    async def receive(self) -> TurnEvent:
        return await self._queue.get()

    def close(self) -> None:
        """Stop accepting events and discard anything still buffered.

        Draining also releases a sender blocked on a full buffer.
        """
        if self._closed:
            return
        self._closed = True
        while not self._queue.empty():
            self._queue.get_nowait()
            self.dropped += 1
        if self.dropped:
            logger.debug("Channel closed, dropped %d event(s)", self.dropped)
