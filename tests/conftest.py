from __future__ import annotations

import asyncio

import pytest

from frontdoor.core.address import ListeningAddress
from frontdoor.core.events import EventBus
from frontdoor.core.session import EngineSession


class FakeServer:
    """In-memory ServerPort: records calls, never touches a socket."""

    def __init__(self, address: ListeningAddress | None = None, bind_error: OSError | None = None) -> None:
        self.bound_address = address or ListeningAddress("127.0.0.1", 45678)
        self.bind_error = bind_error
        self.listen_calls: list[tuple[str, int]] = []
        self.listening = False
        self.closed = False

    async def listen(self, host: str, port: int) -> None:
        self.listen_calls.append((host, port))
        if self.bind_error:
            raise self.bind_error
        self.listening = True

    def address(self) -> ListeningAddress | None:
        return self.bound_address if self.listening else None

    async def close(self) -> None:
        self.listening = False
        self.closed = True


class FakeLauncher:
    """ProxyLauncherPort stand-in with scripted start/stop behaviour."""

    def __init__(
        self,
        address: ListeningAddress | None = None,
        error: Exception | None = None,
        stop_delay: float = 0.0,
    ) -> None:
        self.address = address or ListeningAddress("1.2.3.4", 9000)
        self.error = error
        self.stop_delay = stop_delay
        self.payloads: list = []
        self.options: list = []
        self.stop_calls = 0

    async def start(self, payload, options=None) -> ListeningAddress:
        self.payloads.append(payload)
        self.options.append(options)
        await asyncio.sleep(0)
        if self.error:
            raise self.error
        return self.address

    async def stop(self) -> None:
        await asyncio.sleep(self.stop_delay)
        self.stop_calls += 1


@pytest.fixture
def fake_server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def fake_launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def session(fake_launcher: FakeLauncher, event_bus: EventBus) -> EngineSession:
    return EngineSession(launcher=fake_launcher, event_bus=event_bus)
