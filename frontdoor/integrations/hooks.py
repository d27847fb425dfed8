"""Hooks that turn a host framework's own listen call into a session listen.

Two host shapes are supported:

* frameworks exposing a replaceable ``start_listening(server, listen_options,
  callback)`` hook, and the hook is replaced outright;
* frameworks that only have ``host_app.http_server.listen(listen_options,
  callback)``, where a :class:`OneShotListenPatch` intercepts the first call and
  puts the original method back.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Callable, Mapping

from frontdoor.core.errors import ConfigError
from frontdoor.core.session import ListenOptions

if TYPE_CHECKING:
    import asyncio

    from frontdoor.core.session import EngineSession, ListenResult
    from frontdoor.ports.server import ServerPort

logger = logging.getLogger(__name__)

ListenPolyfill = Callable[..., "asyncio.Future[ListenResult]"]


def make_listen_polyfill(
    session: EngineSession,
    server: ServerPort,
    template: ListenOptions | None = None,
) -> ListenPolyfill:
    """Build ``listen(listen_options, callback=None)`` forwarding to *session*.

    *listen_options* is the framework's own mapping: ``port``/``host``,
    ``pipe_path``, or ``path`` (unix socket, which the proxy cannot use).
    """
    base = template or ListenOptions()

    def listen_polyfill(
        listen_options: Mapping[str, Any],
        callback: Callable[[], Any] | None = None,
    ) -> asyncio.Future[ListenResult]:
        if listen_options.get("path") is not None:
            raise ConfigError("Engine does not support listening on a path")
        if listen_options.get("port") is None:
            pipe_path = listen_options.get("pipe_path")
            if not pipe_path:
                raise ConfigError("Engine needs a port or a pipe name to listen on")
            target: dict[str, Any] = {"port": None, "pipe_path": pipe_path}
        else:
            target = {
                "port": listen_options["port"],
                "host": listen_options.get("host") or "",
                "pipe_path": None,
            }
        options = replace(
            base,
            **target,
            http_server=server,
            aiohttp_app=None,
            handler=None,
            runner=None,
        )
        return session.listen(options, callback)

    return listen_polyfill


class OneShotListenPatch:
    """Swap ``target.listen`` for *replacement* until it is called once."""

    def __init__(self, target: Any, replacement: Callable[..., Any]) -> None:
        self._target = target
        self._replacement = replacement
        self._original: Any = None
        self._had_own_attr = False
        self._installed = False

    @property
    def installed(self) -> bool:
        return self._installed

    def install(self) -> None:
        if self._installed:
            raise RuntimeError("listen patch is already installed")
        self._had_own_attr = "listen" in vars(self._target)
        self._original = vars(self._target).get("listen")
        self._target.listen = self._intercept
        self._installed = True

    def restore(self) -> None:
        if not self._installed:
            return
        if self._had_own_attr:
            self._target.listen = self._original
        else:
            # The original came from the class; dropping our shadow exposes it
            del self._target.listen
        self._installed = False
        self._original = None

    def _intercept(self, *args: Any, **kwargs: Any) -> Any:
        self.restore()
        return self._replacement(*args, **kwargs)


def install_listen_hook(
    session: EngineSession,
    host_app: Any,
    template: ListenOptions | None = None,
) -> OneShotListenPatch | None:
    """Route *host_app*'s next listen through *session*.

    Returns the installed patch for hosts without a ``start_listening``
    hook, None otherwise.
    """
    if getattr(host_app, "start_listening", None):
        def start_listening(
            server: ServerPort,
            listen_options: Mapping[str, Any],
            callback: Callable[[], Any] | None = None,
        ) -> asyncio.Future[ListenResult]:
            return make_listen_polyfill(session, server, template)(listen_options, callback)

        host_app.start_listening = start_listening
        logger.debug("Replaced start_listening hook on %s", type(host_app).__name__)
        return None

    server = host_app.http_server
    patch = OneShotListenPatch(server, make_listen_polyfill(session, server, template))
    patch.install()
    logger.debug("Patched http_server.listen on %s", type(host_app).__name__)
    return patch
