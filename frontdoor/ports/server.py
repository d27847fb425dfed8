from __future__ import annotations

from typing import Protocol, runtime_checkable

from frontdoor.core.address import ListeningAddress


@runtime_checkable
class ServerPort(Protocol):
    """Canonical request-handling server.

    Framework adapters (aiohttp apps, bare handlers, runners) are all
    reduced to this interface before a session binds them.
    """

    async def listen(self, host: str, port: int) -> None:
        """Bind and start serving. Returns once the OS confirmed the bind."""
        ...

    def address(self) -> ListeningAddress | None:
        """The bound address after ``listen()``, else None."""
        ...

    async def close(self) -> None:
        """Stop listening."""
        ...
