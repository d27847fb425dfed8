"""Startup payload handed to the proxy process (its ``-defaults`` config)."""
from __future__ import annotations

import json
from dataclasses import dataclass, field

from frontdoor.core.address import BindResult, ListenTarget, join_host_port

DEFAULT_GRAPHQL_PATHS = ("/graphql",)


@dataclass(frozen=True)
class HandshakePayload:
    origin_url: str
    graphql_paths: tuple[str, ...] = DEFAULT_GRAPHQL_PATHS
    frontend_host: str | None = None
    frontend_port: int | None = None
    frontend_pipe_path: str | None = None
    # Lets the proxy serve several graphql_paths from one origin
    use_frontend_path_for_default_origin: bool = field(default=True, init=False)

    def to_dict(self) -> dict:
        """Wire form: the proxy's camelCase keys, unset fields omitted."""
        data: dict = {}
        if self.frontend_host:
            data["frontendHost"] = self.frontend_host
        if self.frontend_port:
            data["frontendPort"] = self.frontend_port
        if self.frontend_pipe_path:
            data["frontendPipePath"] = self.frontend_pipe_path
        data["graphqlPaths"] = list(self.graphql_paths)
        data["originUrl"] = self.origin_url
        data["useFrontendPathForDefaultOrigin"] = self.use_frontend_path_for_default_origin
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))


def build_payload(
    target: ListenTarget,
    bind_result: BindResult,
    graphql_paths: list[str] | tuple[str, ...] | None = None,
) -> HandshakePayload:
    """Combine the public listen target with the app's ephemeral address.

    Port 0 is left out so the proxy picks its own port.
    """
    origin_url = f"http://{join_host_port(bind_result.address, bind_result.port)}"
    paths = DEFAULT_GRAPHQL_PATHS if graphql_paths is None else tuple(graphql_paths)

    if target.is_pipe:
        return HandshakePayload(
            origin_url=origin_url,
            graphql_paths=paths,
            frontend_pipe_path=target.pipe_path,
        )
    return HandshakePayload(
        origin_url=origin_url,
        graphql_paths=paths,
        frontend_host=target.host or None,
        frontend_port=target.port or None,
    )
