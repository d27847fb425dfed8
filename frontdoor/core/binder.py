from __future__ import annotations

import logging

from frontdoor.core.address import BindResult
from frontdoor.core.errors import BindError
from frontdoor.ports.server import ServerPort

logger = logging.getLogger(__name__)

DEFAULT_INNER_HOST = "127.0.0.1"


async def bind_ephemeral(server: ServerPort, inner_host: str = DEFAULT_INNER_HOST) -> BindResult:
    """Bind *server* to an OS-assigned port on *inner_host*.

    Only the proxy ever talks to this address. Raises :class:`BindError`
    if the OS refuses the bind.
    """
    try:
        await server.listen(inner_host, 0)
    except OSError as e:
        raise BindError(f"Could not bind app server on {inner_host}: {e}") from e

    bound = server.address()
    if bound is None:
        raise BindError(f"App server on {inner_host} reported no address after listening")
    logger.info("App server bound to ephemeral address %s", bound)
    return bound
