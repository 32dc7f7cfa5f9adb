"""Local reverse proxy that applies tier routing on the request path."""

from autoroute.proxy.app import (
    AUTO_MODELS,
    HEALTH_PATH,
    InterceptingProxy,
    RoutedEvent,
    create_app,
)
from autoroute.proxy.server import (
    PortClaim,
    ProxyHandle,
    claim_port,
    probe_health,
    start_proxy,
)

__all__ = [
    "AUTO_MODELS",
    "HEALTH_PATH",
    "InterceptingProxy",
    "PortClaim",
    "ProxyHandle",
    "RoutedEvent",
    "claim_port",
    "create_app",
    "probe_health",
    "start_proxy",
]
