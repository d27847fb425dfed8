"""Tests for listen target normalization."""
from __future__ import annotations

import pytest

from frontdoor.core.address import (
    ListeningAddress,
    ListenTarget,
    is_pipe_path,
    join_host_port,
    normalize,
)
from frontdoor.core.errors import ConfigError

PIPE = "\\\\.\\pipe\\foo"  # \\.\pipe\foo


class TestNormalize:
    def test_integer_port(self):
        target = normalize(8080, None, "0.0.0.0")
        assert target == ListenTarget(host="0.0.0.0", port=8080)
        assert not target.is_pipe

    def test_numeric_string_port_equals_integer(self):
        assert normalize("8080", None) == normalize(8080, None)

    def test_port_zero_allowed(self):
        assert normalize(0, None).port == 0

    def test_host_defaults_to_empty(self):
        assert normalize(3000, None, None).host == ""

    def test_pipe_path(self):
        target = normalize(None, PIPE)
        assert target.is_pipe
        assert target.pipe_path == PIPE
        assert target.port is None

    def test_pipe_in_port_string(self):
        target = normalize(PIPE, None)
        assert target.pipe_path == PIPE
        assert target.port is None

    def test_neither_raises(self):
        with pytest.raises(ConfigError, match="pipe_path"):
            normalize(None, None)

    def test_both_raises(self):
        with pytest.raises(ConfigError, match="Only one"):
            normalize(3000, PIPE)

    def test_pipe_port_string_and_pipe_path_raises(self):
        with pytest.raises(ConfigError, match="Only one"):
            normalize(PIPE, PIPE)

    def test_invalid_string_names_value(self):
        with pytest.raises(ConfigError, match="'abc'"):
            normalize("abc", None)

    def test_non_ascii_digits_rejected(self):
        with pytest.raises(ConfigError, match="'²'"):
            normalize("²", None)

    def test_unix_path_string_rejected(self):
        with pytest.raises(ConfigError):
            normalize("/tmp/app.sock", None)

    def test_out_of_range_port(self):
        with pytest.raises(ConfigError, match="between"):
            normalize(70000, None)

    def test_bool_port_rejected(self):
        with pytest.raises(ConfigError):
            normalize(True, None)

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            normalize(None, None)


class TestListenTarget:
    def test_requires_exactly_one(self):
        with pytest.raises(ConfigError):
            ListenTarget()
        with pytest.raises(ConfigError):
            ListenTarget(port=1, pipe_path=PIPE)


class TestHelpers:
    def test_is_pipe_path(self):
        assert is_pipe_path(PIPE)
        assert not is_pipe_path("\\\\.\\other\\foo")

    def test_join_ipv4(self):
        assert join_host_port("127.0.0.1", 80) == "127.0.0.1:80"

    def test_join_ipv6(self):
        assert join_host_port("::1", 80) == "[::1]:80"

    def test_listening_address_str(self):
        assert str(ListeningAddress("::", 4000)) == "[::]:4000"
