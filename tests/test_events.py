from __future__ import annotations

import asyncio

import pytest

from frontdoor.core.address import ListeningAddress
from frontdoor.core.errors import HandshakeError
from frontdoor.core.events import (
    EngineErrorEvent,
    EngineListeningEvent,
    EngineStoppedEvent,
    EventBus,
)

ADDR = ListeningAddress("1.2.3.4", 9000)


class TestEventBus:
    def test_subscribe_and_publish(self):
        bus = EventBus()
        queue = bus.subscribe(EngineListeningEvent)
        bus.publish(EngineListeningEvent(address=ADDR, origin=ADDR))
        assert queue.get_nowait().address == ADDR

    def test_types_isolated(self):
        bus = EventBus()
        errors = bus.subscribe(EngineErrorEvent)
        bus.publish(EngineStoppedEvent(address=None))
        assert errors.empty()

    def test_one_queue_for_several_types(self):
        bus = EventBus()
        outcome = bus.subscribe(EngineListeningEvent, EngineErrorEvent)
        error = EngineErrorEvent(error=HandshakeError("boom"), stage="handshake")
        bus.publish(error)
        bus.publish(EngineStoppedEvent(address=None))
        bus.publish(EngineListeningEvent(address=ADDR, origin=ADDR))
        assert outcome.get_nowait() is error
        assert isinstance(outcome.get_nowait(), EngineListeningEvent)
        assert outcome.empty()

    def test_subscribe_needs_a_type(self):
        with pytest.raises(TypeError):
            EventBus().subscribe()

    def test_unsubscribe(self):
        bus = EventBus()
        queue = bus.subscribe(EngineErrorEvent)
        bus.unsubscribe(queue)
        bus.unsubscribe(asyncio.Queue())
        bus.publish(EngineErrorEvent(error=HandshakeError("boom"), stage="bind"))
        assert queue.empty()
        assert bus.subscriber_count == 0

    async def test_iter_events_cleanup_on_cancel(self):
        bus = EventBus()
        received = []

        async def consumer():
            async for ev in bus.iter_events(EngineStoppedEvent):
                received.append(ev)

        task = asyncio.create_task(consumer())
        await asyncio.sleep(0.01)
        bus.publish(EngineStoppedEvent(address=ADDR))
        await asyncio.sleep(0.01)
        assert received == [EngineStoppedEvent(address=ADDR)]

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert bus.subscriber_count == 0
