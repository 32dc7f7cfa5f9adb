"""Exception hierarchy.

Startup errors (configuration, port conflicts) propagate to whoever
starts the proxy. Request errors are turned into JSON responses and
never leave the connection that caused them.
"""

from typing import Any


class AutorouteError(Exception):
    """Base class for all autoroute errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigurationError(AutorouteError):
    """Required settings are missing or malformed."""


class PortConflictError(AutorouteError):
    """The port is taken by something that is not a healthy autoroute proxy."""

    def __init__(self, port: int, reason: str = ""):
        message = f"Port {port} is in use by another service"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, {"port": port})
        self.port = port


class RequestParseError(AutorouteError):
    """A completions request body is not valid JSON."""


class UpstreamError(AutorouteError):
    """The upstream endpoint could not be reached."""
