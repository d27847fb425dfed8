"""Listen target normalization: port vs. named pipe, host, address helpers."""
from __future__ import annotations

from dataclasses import dataclass

from frontdoor.core.errors import ConfigError

WINDOWS_PIPE_PREFIX = "\\\\.\\pipe\\"  # \\.\pipe\

_MAX_PORT = 65535


@dataclass(frozen=True)
class ListeningAddress:
    """A concrete ``address:port`` something is listening on."""

    address: str
    port: int

    def __str__(self) -> str:
        return join_host_port(self.address, self.port)


# The embedding server's loopback address after the OS confirmed the bind.
BindResult = ListeningAddress


@dataclass(frozen=True)
class ListenTarget:
    """Where the proxy should listen: a TCP ``host``/``port`` or a pipe."""

    host: str = ""
    port: int | None = None
    pipe_path: str | None = None

    def __post_init__(self) -> None:
        if (self.port is None) == (self.pipe_path is None):
            raise ConfigError("Exactly one of `port` and `pipe_path` must be set")

    @property
    def is_pipe(self) -> bool:
        return self.pipe_path is not None


def is_pipe_path(value: str) -> bool:
    return value.startswith(WINDOWS_PIPE_PREFIX)


def join_host_port(host: str, port: int) -> str:
    """Format ``host:port``, bracketing IPv6 literals."""
    if ":" in host and not host.startswith("["):
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def _parse_port(raw: int | str) -> tuple[int | None, str | None]:
    """Return ``(port, None)`` for numeric input or ``(None, pipe)`` for a pipe."""
    if isinstance(raw, bool):
        raise ConfigError(f"port must be an integer or a Windows named pipe, not {raw!r}")
    if isinstance(raw, int):
        port = raw
    elif isinstance(raw, str):
        text = raw.strip()
        if not (text.isascii() and text.isdigit()):
            # The proxy only knows how to listen on Windows named pipes
            if is_pipe_path(raw):
                return None, raw
            raise ConfigError(
                f"port must be an integer or a Windows named pipe, not '{raw}'"
            )
        port = int(text)
    else:
        raise ConfigError(f"port must be an integer or a string, not {type(raw).__name__}")

    if not 0 <= port <= _MAX_PORT:
        raise ConfigError(f"port must be between 0 and {_MAX_PORT}, not {port}")
    return port, None


def normalize(
    raw_port: int | str | None,
    raw_pipe_path: str | None,
    raw_host: str | None = "",
) -> ListenTarget:
    """Turn user listen input into exactly one :class:`ListenTarget` shape.

    Raises :class:`ConfigError` when neither or both of port and pipe are
    given, or when a string port is neither numeric nor a named pipe path.
    """
    if raw_port is None and raw_pipe_path is None:
        raise ConfigError(
            "Must provide either the `pipe_path` or the `port` that your app "
            "will be accessible on."
        )

    port: int | None = None
    pipe_path = raw_pipe_path
    if raw_port is not None:
        port, port_pipe = _parse_port(raw_port)
        if port_pipe is not None:
            if pipe_path is not None:
                raise ConfigError("Only one of `port` and `pipe_path` may be set")
            pipe_path = port_pipe

    if port is not None and pipe_path is not None:
        raise ConfigError("Only one of `port` and `pipe_path` may be set")

    if pipe_path is not None:
        if not pipe_path:
            raise ConfigError("`pipe_path` must not be empty")
        return ListenTarget(pipe_path=pipe_path)
    return ListenTarget(host=raw_host or "", port=port)
