"""Tests for the handshake payload sent to the proxy."""
from __future__ import annotations

import json

from frontdoor.core.address import ListeningAddress, ListenTarget
from frontdoor.core.payload import build_payload

BOUND = ListeningAddress("127.0.0.1", 51234)


class TestBuildPayload:
    def test_tcp_target(self):
        payload = build_payload(ListenTarget(host="0.0.0.0", port=3000), BOUND)
        assert payload.origin_url == "http://127.0.0.1:51234"
        assert payload.frontend_port == 3000
        assert payload.frontend_host == "0.0.0.0"
        assert payload.frontend_pipe_path is None
        assert payload.graphql_paths == ("/graphql",)

    def test_pipe_target(self):
        payload = build_payload(ListenTarget(pipe_path="\\\\.\\pipe\\foo"), BOUND)
        data = payload.to_dict()
        assert data["frontendPipePath"] == "\\\\.\\pipe\\foo"
        assert "frontendPort" not in data
        assert "frontendHost" not in data

    def test_custom_graphql_paths(self):
        payload = build_payload(ListenTarget(port=3000), BOUND, ["/api", "/admin"])
        assert payload.to_dict()["graphqlPaths"] == ["/api", "/admin"]

    def test_empty_graphql_paths_kept(self):
        payload = build_payload(ListenTarget(port=3000), BOUND, [])
        assert payload.to_dict()["graphqlPaths"] == []

    def test_port_zero_left_to_proxy(self):
        data = build_payload(ListenTarget(port=0), BOUND).to_dict()
        assert "frontendPort" not in data

    def test_ipv6_origin_bracketed(self):
        payload = build_payload(ListenTarget(port=3000), ListeningAddress("::1", 4000))
        assert payload.origin_url == "http://[::1]:4000"

    def test_wire_format(self):
        payload = build_payload(ListenTarget(host="localhost", port=3000), BOUND)
        assert json.loads(payload.to_json()) == {
            "frontendHost": "localhost",
            "frontendPort": 3000,
            "graphqlPaths": ["/graphql"],
            "originUrl": "http://127.0.0.1:51234",
            "useFrontendPathForDefaultOrigin": True,
        }
