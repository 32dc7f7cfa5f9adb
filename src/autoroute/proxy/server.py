"""Proxy lifecycle and port arbitration.

Starting the proxy is a two-step protocol:

1. Try to bind the configured port.
2. If it is taken, probe /health on it. A healthy autoroute answer
   means a compatible instance is already running and gets adopted;
   anything else is a PortConflictError naming the port.

The server itself is a uvicorn.Server running as an asyncio task on the
socket claimed in step 1.
"""

import asyncio
import errno
import logging
import socket
from dataclasses import dataclass, field
from typing import Awaitable, Callable

import httpx
import uvicorn

from autoroute.config import ProxyConfig
from autoroute.errors import PortConflictError
from autoroute.routing import TierModels

from .app import HEALTH_PATH, ErrorHook, RoutedHook, create_app

logger = logging.getLogger(__name__)

HEALTH_PROBE_TIMEOUT = 2.0

HealthProbe = Callable[[str, int], Awaitable[bool]]


@dataclass
class PortClaim:
    """Outcome of claiming a port: a bound socket, or an adopted instance."""
    port: int
    sock: socket.socket | None = None
    reused: bool = False


async def probe_health(host: str, port: int) -> bool:
    """True when an autoroute-compatible proxy answers on host:port."""
    url = f"http://{_url_host(host)}:{port}{HEALTH_PATH}"
    try:
        async with httpx.AsyncClient(timeout=HEALTH_PROBE_TIMEOUT) as client:
            resp = await client.get(url)
            data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.debug(f"Health probe of {url} failed: {e}")
        return False
    return isinstance(data, dict) and data.get("status") == "ok"


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind a TCP socket, raising OSError if the address is taken."""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    return sock


async def claim_port(
    host: str,
    port: int,
    probe: HealthProbe = probe_health,
) -> PortClaim:
    """Bind the port, or adopt a healthy instance already holding it.

    Raises:
        PortConflictError: The port is held by something else.
        OSError: Binding failed for a reason other than the port being in use.
    """
    try:
        sock = bind_socket(host, port)
    except OSError as e:
        if e.errno != errno.EADDRINUSE:
            raise
        logger.info(f"Port {port} in use, checking if existing proxy is compatible...")
        if await probe(host, port):
            logger.info(f"Reusing existing autoroute proxy on port {port}")
            return PortClaim(port=port, reused=True)
        raise PortConflictError(port) from e
    return PortClaim(port=sock.getsockname()[1], sock=sock)


async def _noop() -> None:
    return None


@dataclass
class ProxyHandle:
    """A running (or adopted) proxy."""
    port: int
    base_url: str
    reused: bool = False
    _close: Callable[[], Awaitable[None]] = field(default=_noop, repr=False)
    _wait: Callable[[], Awaitable[None]] = field(default=_noop, repr=False)

    async def close(self) -> None:
        """Stop accepting connections; in-flight requests finish first."""
        await self._close()

    async def wait(self) -> None:
        """Block until the server exits (returns at once when adopted)."""
        await self._wait()


def _url_host(host: str) -> str:
    if host in ("0.0.0.0", ""):
        return "127.0.0.1"
    if host == "::":
        return "[::1]"
    return f"[{host}]" if ":" in host else host


async def start_proxy(
    config: ProxyConfig,
    tier_models: TierModels | None = None,
    on_ready: Callable[[int], object] | None = None,
    on_routed: RoutedHook | None = None,
    on_error: ErrorHook | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    probe: HealthProbe = probe_health,
) -> ProxyHandle:
    """Start the routing proxy in the running event loop.

    Args:
        config: Validated before anything is bound.
        tier_models: Overrides config.tier_models when given.
        on_ready: Called with the bound port once the server accepts.
        on_routed: Forwarded to the app; called per auto-routed request.
        on_error: Forwarded to the app; called per failed request.
        transport: Custom httpx transport for the upstream (tests).
        probe: Health probe used when the port is already taken.

    Returns:
        ProxyHandle. For an adopted instance, close() does nothing.

    Raises:
        ConfigurationError: base URL or API key missing.
        PortConflictError: Port held by an incompatible service.
    """
    config.validate()

    claim = await claim_port(config.host, config.port, probe)
    base_url = f"http://{_url_host(config.host)}:{claim.port}"
    if claim.reused:
        return ProxyHandle(port=claim.port, base_url=base_url, reused=True)

    app = create_app(
        config,
        tier_models=tier_models,
        on_routed=on_routed,
        on_error=on_error,
        transport=transport,
    )
    server = uvicorn.Server(uvicorn.Config(app, log_level="warning", lifespan="on"))
    task = asyncio.create_task(server.serve(sockets=[claim.sock]))

    while not server.started:
        if task.done():
            claim.sock.close()
            # Surfaces the startup exception, if there was one
            task.result()
            raise RuntimeError(f"Proxy on port {claim.port} exited during startup")
        await asyncio.sleep(0.01)

    logger.info(f"Proxy listening on {base_url}")
    if on_ready is not None:
        try:
            on_ready(claim.port)
        except Exception:
            logger.exception("on_ready hook failed")

    async def wait() -> None:
        await asyncio.shield(task)

    async def close() -> None:
        server.should_exit = True
        await task
        claim.sock.close()
        logger.info(f"Proxy on port {claim.port} stopped")

    return ProxyHandle(port=claim.port, base_url=base_url, _close=close, _wait=wait)
