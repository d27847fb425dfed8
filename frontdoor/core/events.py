"""Lifecycle events an engine session publishes, and the bus carrying them.

Each :class:`~frontdoor.core.session.EngineSession` owns (or is handed) one
bus; there is no process-wide error channel.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator

from frontdoor.core.address import ListeningAddress
from frontdoor.core.errors import EngineError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineListeningEvent:
    """The proxy reported its public address; the session is live."""
    address: ListeningAddress
    origin: ListeningAddress


@dataclass(frozen=True)
class EngineErrorEvent:
    """A listen attempt failed after its synchronous validation passed."""
    error: EngineError
    stage: str  # "bind" | "handshake"


@dataclass(frozen=True)
class EngineStoppedEvent:
    """The proxy was stopped and the app server closed."""
    address: ListeningAddress | None


EngineEvent = EngineListeningEvent | EngineErrorEvent | EngineStoppedEvent


class EventBus:
    """Fans a session's lifecycle events out to asyncio queues.

    A subscriber names the event types it cares about and gets a single
    queue receiving all of them in publish order, so a listen outcome can
    be awaited with ``subscribe(EngineListeningEvent, EngineErrorEvent)``.
    """

    def __init__(self) -> None:
        self._subscriptions: list[tuple[tuple[type, ...], asyncio.Queue]] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, *event_types: type) -> asyncio.Queue[EngineEvent]:
        if not event_types:
            raise TypeError("subscribe() needs at least one event type")
        queue: asyncio.Queue[EngineEvent] = asyncio.Queue()
        self._subscriptions.append((event_types, queue))
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscriptions = [
            (types, q) for types, q in self._subscriptions if q is not queue
        ]

    def publish(self, event: EngineEvent) -> None:
        logger.debug("Publishing %s", type(event).__name__)
        for types, queue in self._subscriptions:
            if isinstance(event, types):
                queue.put_nowait(event)

    async def iter_events(self, *event_types: type) -> AsyncIterator[EngineEvent]:
        queue = self.subscribe(*event_types)
        try:
            while True:
                yield await queue.get()
        finally:
            self.unsubscribe(queue)
