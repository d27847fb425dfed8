"""Proxy launcher port: the external process that takes the public traffic."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from frontdoor.core.address import ListeningAddress
    from frontdoor.core.payload import HandshakePayload


@dataclass
class LauncherOptions:
    """Options passed through ``listen()`` to the launcher untouched."""

    extra_args: list[str] = field(default_factory=list)
    startup_timeout: float = 5.0
    binary_path: str | None = None
    env: dict[str, str] = field(default_factory=dict)


@runtime_checkable
class ProxyLauncherPort(Protocol):
    """Abstract interface for proxy launchers.

    Sessions only depend on this protocol; tests substitute fakes.
    """

    async def start(
        self, payload: HandshakePayload, options: LauncherOptions | None = None
    ) -> ListeningAddress:
        """Start the proxy. Returns the address it reports listening on."""
        ...

    async def stop(self) -> None:
        """Stop the proxy. Calling it twice is not supported."""
        ...
