"""Pick the one canonical server out of the mutually exclusive app sources."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

from frontdoor.adapters.web.server import AiohttpServer
from frontdoor.core.errors import ConfigError

if TYPE_CHECKING:
    from frontdoor.ports.server import ServerPort

SERVER_SOURCES = ("http_server", "aiohttp_app", "handler", "runner")

_ADAPTERS: dict[str, Callable[[Any], ServerPort]] = {
    "http_server": lambda server: server,
    "aiohttp_app": lambda app: AiohttpServer(app),
    "handler": AiohttpServer.from_handler,
    "runner": lambda runner: AiohttpServer(runner=runner),
}


def _quoted(names: tuple[str, ...], last_joiner: str) -> str:
    quoted = [f'"{n}"' for n in names]
    return f"{', '.join(quoted[:-1])}, {last_joiner} {quoted[-1]}"


def resolve_server(options: Any) -> ServerPort:
    """Return the canonical server for whichever source *options* carries.

    Wrapping a framework object builds a new :class:`AiohttpServer` but does
    not touch the network.
    """
    provided = [name for name in SERVER_SOURCES if getattr(options, name, None) is not None]
    if not provided:
        raise ConfigError(f"Must provide {_quoted(SERVER_SOURCES, 'or')}")
    if len(provided) > 1:
        raise ConfigError(
            f"Must only provide one of {_quoted(SERVER_SOURCES, 'and')} "
            f"(got {', '.join(provided)})"
        )
    name = provided[0]
    return _ADAPTERS[name](getattr(options, name))
