"""Engine session: the listen/handshake/stop lifecycle.

``listen()`` has two phases.  The synchronous one normalizes the listen
target and resolves the canonical server; its failures raise straight
away and nothing has been bound yet.  The asynchronous one binds the app
to an ephemeral loopback port, starts the proxy with the handshake
payload and waits for the proxy's public address.  Its outcome is
delivered once, on a later loop turn, through the returned result future
and the session's event bus.

    Idle -> AwaitingBind -> AwaitingHandshake -> Live -> Stopping -> Idle
                  \\                 \\
                   +------------------+-> Errored -> (stop) -> Idle
"""
from __future__ import annotations

import asyncio
import functools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from frontdoor.adapters.engineproxy.launcher import EngineProxyLauncher
from frontdoor.core.address import BindResult, ListeningAddress, ListenTarget, normalize
from frontdoor.core.binder import DEFAULT_INNER_HOST, bind_ephemeral
from frontdoor.core.errors import BindError, EngineError, HandshakeError, StateError
from frontdoor.core.events import (
    EngineErrorEvent,
    EngineListeningEvent,
    EngineStoppedEvent,
    EventBus,
)
from frontdoor.core.payload import build_payload
from frontdoor.core.resolver import resolve_server

if TYPE_CHECKING:
    from aiohttp import web

    from frontdoor.adapters.web.server import RequestHandler
    from frontdoor.ports.proxy import LauncherOptions, ProxyLauncherPort
    from frontdoor.ports.server import ServerPort

logger = logging.getLogger(__name__)

# Config handed to the proxy: a dict (sent as JSON) or a config file path.
EngineConfig = dict[str, Any] | str


class EngineState(Enum):
    IDLE = "idle"
    AWAITING_BIND = "awaiting_bind"
    AWAITING_HANDSHAKE = "awaiting_handshake"
    LIVE = "live"
    STOPPING = "stopping"
    ERRORED = "errored"


@dataclass
class ListenOptions:
    """What to expose and where.

    Exactly one of ``port`` / ``pipe_path`` and exactly one server source
    (``http_server``, ``aiohttp_app``, ``handler``, ``runner``) must be set.
    """

    port: int | str | None = None
    host: str = ""  # where the proxy listens; "" means all interfaces
    pipe_path: str | None = None
    graphql_paths: list[str] | None = None  # default: ["/graphql"]
    inner_host: str = DEFAULT_INNER_HOST  # where the app itself listens
    launcher_options: LauncherOptions | None = None

    http_server: ServerPort | None = None
    aiohttp_app: web.Application | None = None
    handler: RequestHandler | None = None
    runner: web.BaseRunner | None = None


@dataclass(frozen=True)
class ListenResult:
    """Outcome of one listen attempt: the public address or the error."""

    address: ListeningAddress | None = None
    error: EngineError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class EngineSession:
    """Runs one app behind one proxy process at a time."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        launcher: ProxyLauncherPort | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._config = config if config is not None else {}
        self._launcher = launcher or EngineProxyLauncher(self._config)
        self._event_bus = event_bus or EventBus()
        self._state = EngineState.IDLE
        self._server: ServerPort | None = None
        self._bind_result: BindResult | None = None
        self._public_address: ListeningAddress | None = None
        self._proxy: ProxyLauncherPort | None = None
        self._task: asyncio.Task | None = None

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def server(self) -> ServerPort | None:
        return self._server

    @property
    def bind_result(self) -> BindResult | None:
        return self._bind_result

    @property
    def proxy(self) -> ProxyLauncherPort | None:
        """The running proxy launcher, or None before start / after stop."""
        return self._proxy

    @property
    def current_public_address(self) -> ListeningAddress | None:
        """Where the proxy listens. Handy when the proxy was told port 0."""
        return self._public_address

    # ------------------------------------------------------------------

    def listen(
        self,
        options: ListenOptions,
        on_ready: Callable[[], Any] | None = None,
    ) -> asyncio.Future[ListenResult]:
        """Bind the app on an ephemeral port and start the proxy in front of it.

        Raises :class:`ConfigError` or :class:`StateError` synchronously.
        Later failures resolve the returned future with an error result and
        publish one :class:`EngineErrorEvent`; ``on_ready`` only runs on
        success, after :attr:`current_public_address` is set.
        """
        if self._state is not EngineState.IDLE:
            raise StateError(f"Session is already {self._state.value}; stop it first")

        target = normalize(options.port, options.pipe_path, options.host)
        server = resolve_server(options)

        loop = asyncio.get_running_loop()
        result: asyncio.Future[ListenResult] = loop.create_future()
        self._server = server
        self._state = EngineState.AWAITING_BIND
        self._task = loop.create_task(
            self._start(target, server, options, on_ready, result)
        )
        self._task.add_done_callback(functools.partial(self._on_start_done, result))
        return result

    async def _start(
        self,
        target: ListenTarget,
        server: ServerPort,
        options: ListenOptions,
        on_ready: Callable[[], Any] | None,
        result: asyncio.Future[ListenResult],
    ) -> None:
        loop = asyncio.get_running_loop()

        try:
            bound = await bind_ephemeral(server, options.inner_host)
        except BindError as e:
            self._fail(e, "bind", result)
            return
        except Exception as e:
            error = BindError(f"App server failed to listen: {e}")
            error.__cause__ = e
            self._fail(error, "bind", result)
            return
        self._bind_result = bound

        payload = build_payload(target, bound, options.graphql_paths)
        self._state = EngineState.AWAITING_HANDSHAKE
        logger.info("Starting proxy with origin %s", payload.origin_url)
        try:
            address = await self._launcher.start(payload, options.launcher_options)
        except Exception as e:
            # The app server stays bound so the caller can retry or stop().
            await self._stop_failed_launcher()
            error = HandshakeError(f"Proxy failed to start: {e}")
            error.__cause__ = e
            self._fail(error, "handshake", result)
            return

        self._proxy = self._launcher
        self._public_address = address
        self._state = EngineState.LIVE
        logger.info("Proxy listening on %s (origin %s)", address, bound)
        loop.call_soon(self._announce, address, bound, on_ready, result)

    async def _stop_failed_launcher(self) -> None:
        try:
            await self._launcher.stop()
        except Exception as e:
            logger.warning("Stopping the proxy after a failed start raised: %s", e)

    def _on_start_done(
        self,
        result: asyncio.Future[ListenResult],
        task: asyncio.Task,
    ) -> None:
        if task.cancelled():
            error = EngineError("Listen was cancelled before the proxy was live")
        elif task.exception() is not None:
            cause = task.exception()
            error = EngineError(f"Listen failed unexpectedly: {cause}")
            error.__cause__ = cause
        else:
            return
        stage = "bind" if self._state is EngineState.AWAITING_BIND else "handshake"
        self._fail(error, stage, result)

    def _announce(
        self,
        address: ListeningAddress,
        origin: BindResult,
        on_ready: Callable[[], Any] | None,
        result: asyncio.Future[ListenResult],
    ) -> None:
        self._event_bus.publish(EngineListeningEvent(address=address, origin=origin))
        if not result.done():
            result.set_result(ListenResult(address=address))
        if on_ready is not None:
            on_ready()

    def _fail(
        self,
        error: EngineError,
        stage: str,
        result: asyncio.Future[ListenResult],
    ) -> None:
        self._state = EngineState.ERRORED
        logger.error("Listen failed during %s: %s", stage, error)
        asyncio.get_running_loop().call_soon(self._report_error, error, stage, result)

    def _report_error(
        self,
        error: EngineError,
        stage: str,
        result: asyncio.Future[ListenResult],
    ) -> None:
        self._event_bus.publish(EngineErrorEvent(error=error, stage=stage))
        if not result.done():
            result.set_result(ListenResult(error=error))

    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Stop the proxy, then close the app server.

        Valid from Live, and from Errored to tear down a server left bound
        by a failed handshake.
        """
        if self._state not in (EngineState.LIVE, EngineState.ERRORED):
            raise StateError(f"Cannot stop a session that is {self._state.value}")

        self._state = EngineState.STOPPING
        address = self._public_address
        try:
            if self._proxy is not None:
                await self._proxy.stop()
                logger.info("Proxy stopped")
        finally:
            try:
                # TODO: wait for in-flight requests before closing the app server
                if self._server is not None:
                    await self._server.close()
            finally:
                self._server = None
                self._proxy = None
                self._public_address = None
                self._bind_result = None
                self._task = None
                self._state = EngineState.IDLE
                self._event_bus.publish(EngineStoppedEvent(address=address))
