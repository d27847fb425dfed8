"""Error taxonomy for engine sessions.

Config and state errors are raised synchronously from ``listen()`` /
``stop()``.  Bind and handshake errors happen after side effects and are
delivered through the session's result future and event bus instead.
"""
from __future__ import annotations


class EngineError(Exception):
    """Base class for every error raised or reported by frontdoor."""


class ConfigError(EngineError, ValueError):
    """Malformed or ambiguous listen input (port, pipe, server source)."""


class StateError(EngineError, RuntimeError):
    """Operation not valid in the session's current lifecycle state."""


class BindError(EngineError, OSError):
    """The embedding server could not bind its ephemeral loopback port."""


class HandshakeError(EngineError, RuntimeError):
    """The proxy process failed to start or never reported its address."""
