"""aiohttp canonical server: AppRunner + TCPSite behind the server port.

Besides ``listen``/``address``/``close`` it keeps a tiny listener registry
(``on``/``remove_listener``/``emit``) so integrations can subscribe to
``"listening"`` and ``"close"``, and so a framework can attach its request
handler after the server was created.
"""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from aiohttp import web

from frontdoor.core.address import ListeningAddress

logger = logging.getLogger(__name__)

RequestHandler = Callable[[web.Request], Awaitable[web.StreamResponse]]
Listener = Callable[..., Any]


class AiohttpServer:
    """Serves an aiohttp app (or a late-bound handler) on one TCP site."""

    def __init__(
        self,
        app: web.Application | None = None,
        *,
        runner: web.BaseRunner | None = None,
    ) -> None:
        if app is not None and runner is not None:
            raise ValueError("Pass either an app or a runner, not both")
        if runner is None:
            runner = web.AppRunner(app if app is not None else self._dispatch_app())
        self._runner = runner
        self._site: web.TCPSite | None = None
        self._address: ListeningAddress | None = None
        self._listeners: dict[str, list[Listener]] = {}

    @classmethod
    def from_handler(cls, handler: RequestHandler) -> AiohttpServer:
        """Wrap a single ``handler(request) -> response`` coroutine."""
        server = cls()
        server.on("request", handler)
        return server

    @property
    def runner(self) -> web.BaseRunner:
        return self._runner

    @property
    def is_listening(self) -> bool:
        return self._site is not None

    # -- server port ------------------------------------------------------

    async def listen(self, host: str = "127.0.0.1", port: int = 0) -> None:
        if self._site is not None:
            raise RuntimeError("Server is already listening")
        if self._runner.server is None:
            await self._runner.setup()
        site = web.TCPSite(self._runner, host, port)
        await site.start()
        self._site = site

        # addresses grows by one sockname per started site; ours is last
        sockname = self._runner.addresses[-1]
        self._address = ListeningAddress(address=sockname[0], port=sockname[1])
        logger.debug("aiohttp server listening on %s", self._address)
        self.emit("listening")

    def address(self) -> ListeningAddress | None:
        return self._address

    async def close(self) -> None:
        if self._site is None and self._runner.server is None:
            return
        await self._runner.cleanup()
        self._site = None
        self._address = None
        logger.debug("aiohttp server closed")
        self.emit("close")

    # -- listeners ----------------------------------------------------------

    def on(self, event: str, callback: Listener) -> None:
        """Subscribe *callback* to *event*. ``"new_listener"`` fires first."""
        self.emit("new_listener", event, callback)
        self._listeners.setdefault(event, []).append(callback)

    def remove_listener(self, event: str, callback: Listener) -> None:
        callbacks = self._listeners.get(event, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> bool:
        """Call every listener of *event*. Returns whether any existed."""
        callbacks = list(self._listeners.get(event, []))
        for cb in callbacks:
            cb(*args)
        return bool(callbacks)

    # -- request dispatch -----------------------------------------------------

    def _dispatch_app(self) -> web.Application:
        app = web.Application()
        app.router.add_route("*", "/{tail:.*}", self._dispatch)
        return app

    async def _dispatch(self, request: web.Request) -> web.StreamResponse:
        handlers = self._listeners.get("request")
        if not handlers:
            raise web.HTTPServiceUnavailable(text="No request handler attached")
        return await handlers[0](request)
