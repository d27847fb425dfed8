"""Listener for frameworks that bring their own server object.

Such frameworks are told the server is already listening, yet some of
their startup still waits for a ``"listening"`` event on it.  The
:class:`ListeningNotifier` fires that event once, for the first
subscriber.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from frontdoor.adapters.web.server import AiohttpServer
from frontdoor.core.session import ListenOptions

if TYPE_CHECKING:
    from frontdoor.core.session import EngineSession

logger = logging.getLogger(__name__)


class ListeningNotifier:
    def __init__(self, server: AiohttpServer) -> None:
        self._server = server
        self._attached = False

    @property
    def attached(self) -> bool:
        return self._attached

    def attach(self) -> None:
        self._server.on("new_listener", self._on_new_listener)
        self._attached = True

    def detach(self) -> None:
        self._server.remove_listener("new_listener", self._on_new_listener)
        self._attached = False

    def _on_new_listener(self, event: str, callback: Any) -> None:
        if event != "listening":
            return
        self.detach()
        # next turn: the subscriber is only registered after new_listener returns
        asyncio.get_running_loop().call_soon(self._server.emit, "listening")


async def prepared_listener(
    session: EngineSession,
    template: ListenOptions | None = None,
) -> AiohttpServer:
    """Return a server that is already live behind the proxy.

    Attach the framework's handler with ``server.on("request", handler)``.
    Raises the listen error if the bind or handshake fails.
    """
    server = AiohttpServer()
    options = replace(
        template or ListenOptions(),
        http_server=server,
        aiohttp_app=None,
        handler=None,
        runner=None,
    )
    result = await session.listen(options)
    if not result.ok:
        raise result.error

    ListeningNotifier(server).attach()
    logger.debug("Prepared listener live at %s", result.address)
    return server
