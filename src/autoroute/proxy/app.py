"""Intercepting reverse proxy.

Sits between an OpenAI-compatible client and the real upstream:

- POST .../chat/completions with model "auto" (or "litellm/auto",
  "autoroute/auto") is classified and its model field rewritten
- Every other request is passed through untouched
- Responses are streamed back as they arrive, never buffered
- GET /health answers locally and never reaches the upstream

The upstream credential always replaces whatever the client sent.
"""

import json
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from typing import Any, AsyncIterator, Callable

import httpx
from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse

from autoroute import __version__
from autoroute.config import ProxyConfig
from autoroute.errors import RequestParseError, UpstreamError
from autoroute.routing import RoutingDecision, TierModels, WeightedClassifier
from autoroute.usage import CostEstimator, get_cost_estimator

logger = logging.getLogger(__name__)

HEALTH_PATH = "/health"
COMPLETIONS_PATH = "/chat/completions"
AUTO_MODELS = frozenset({"auto", "litellm/auto", "autoroute/auto"})
PROMPT_PREVIEW_CHARS = 100

# Framing is redone by httpx (requests) and uvicorn (responses)
HOP_REQUEST_HEADERS = frozenset({"host", "authorization", "transfer-encoding"})
HOP_RESPONSE_HEADERS = frozenset({b"transfer-encoding", b"connection", b"keep-alive"})

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


@dataclass
class RoutedEvent:
    """Summary of one auto-routed request, handed to on_routed."""
    original_model: str
    routed_model: str
    tier: str
    confidence: float
    estimated_savings: float
    prompt_preview: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


RoutedHook = Callable[[RoutedEvent], Any]
ErrorHook = Callable[[Exception], Any]


def extract_prompt(messages: list[Any]) -> str:
    """Text of the last message; structured content is JSON-encoded."""
    last = messages[-1]
    content = last.get("content") if isinstance(last, dict) else last
    if isinstance(content, str):
        return content
    return json.dumps(content, ensure_ascii=False, separators=(",", ":"))


async def relay_body(upstream: httpx.Response) -> AsyncIterator[bytes]:
    """Yield the upstream body chunk by chunk as it arrives.

    A response built in memory (e.g. by a mock transport) has already been
    read, so its content is yielded in one piece instead.
    """
    if upstream.is_stream_consumed:
        yield upstream.content
        return
    async for chunk in upstream.aiter_raw():
        yield chunk


class InterceptingProxy:
    """Request handling behind the FastAPI app.

    Holds only read-only state (config, classifier, pricing) plus the
    shared upstream HTTP client, so concurrent requests never interfere.
    """

    def __init__(
        self,
        config: ProxyConfig,
        tier_models: TierModels | None = None,
        estimator: CostEstimator | None = None,
        on_routed: RoutedHook | None = None,
        on_error: ErrorHook | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.upstream_base = httpx.URL(config.base_url)
        self.classifier = WeightedClassifier(tier_models or config.tier_models)
        self.estimator = estimator or get_cost_estimator()
        self.on_routed = on_routed
        self.on_error = on_error
        # No proxy-imposed timeout; slow upstreams only hold their own connection
        self.client = httpx.AsyncClient(timeout=None, transport=transport)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def handle(self, request: Request) -> Response:
        """Route, rewrite and forward one request."""
        if request.method != "POST" or COMPLETIONS_PATH not in request.url.path:
            return await self.forward(request, self._passthrough_body(request))

        body = await request.body()
        try:
            content, event = self.rewrite(body)
        except RequestParseError as e:
            logger.warning(f"Rejected unparsable completions body: {e}")
            self._notify_error(e)
            return JSONResponse({"error": str(e)}, status_code=500)

        if event is None:
            return await self.forward(request, body)

        self._notify_routed(event)
        logger.info(
            f"[{event.tier}] {event.routed_model} "
            f"(saved {event.estimated_savings * 100:.0f}%)")
        return await self.forward(request, content, rewritten=True)

    def rewrite(self, body: bytes) -> tuple[bytes, RoutedEvent | None]:
        """Substitute the model of an auto-routable completions body.

        Returns:
            The body to forward and the routing summary. The original
            bytes and None when the request is not auto-routable.

        Raises:
            RequestParseError: The body is not valid JSON.
        """
        try:
            payload = json.loads(body)
        except ValueError as e:
            raise RequestParseError(str(e)) from e

        if not isinstance(payload, dict):
            return body, None
        original_model = payload.get("model")
        messages = payload.get("messages")
        if not isinstance(original_model, str) or original_model not in AUTO_MODELS:
            return body, None
        if not isinstance(messages, list) or not messages:
            return body, None

        prompt = extract_prompt(messages)
        decision = self.classifier.classify(prompt)
        payload["model"] = decision.model
        rewritten = json.dumps(
            payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
        return rewritten, self._summarize(original_model, decision, prompt)

    def _summarize(self, original_model: str, decision: RoutingDecision, prompt: str) -> RoutedEvent:
        return RoutedEvent(
            original_model=original_model,
            routed_model=decision.model,
            tier=decision.tier.value,
            confidence=decision.confidence,
            estimated_savings=self.estimator.estimate_savings(decision.model),
            prompt_preview=prompt[:PROMPT_PREVIEW_CHARS],
        )

    def upstream_url_for(self, request: Request) -> httpx.URL:
        """Resolve the client's request target against the upstream origin.

        Like a browser resolving an absolute path, the client path replaces
        any path on the base URL: with base "https://api.example.com/v1",
        "/v1/models" goes to "https://api.example.com/v1/models". The path
        is taken still percent-encoded, so "%2F" stays "%2F".
        """
        raw_path = request.scope.get("raw_path") or request.url.path.encode("utf-8")
        target = raw_path.split(b"?", 1)[0]
        query = request.scope.get("query_string", b"")
        if query:
            target = target + b"?" + query
        return self.upstream_base.copy_with(raw_path=target)

    @staticmethod
    def _passthrough_body(request: Request) -> AsyncIterator[bytes] | None:
        if "content-length" in request.headers or "transfer-encoding" in request.headers:
            return request.stream()
        return None

    def _upstream_headers(self, request: Request, rewritten: bool) -> list[tuple[str, str]]:
        headers = [
            (key, value) for key, value in request.headers.items()
            if key not in HOP_REQUEST_HEADERS
            and not (rewritten and key == "content-length")
        ]
        headers.append(("authorization", f"Bearer {self.config.api_key}"))
        return headers

    async def forward(
        self,
        request: Request,
        content: bytes | AsyncIterator[bytes] | None,
        rewritten: bool = False,
    ) -> Response:
        """Send the request upstream and stream the response back."""
        url = self.upstream_url_for(request)
        headers = self._upstream_headers(request, rewritten)
        if rewritten:
            headers.append(("content-length", str(len(content))))

        upstream_request = self.client.build_request(
            request.method, url, headers=headers, content=content)
        try:
            upstream = await self.client.send(upstream_request, stream=True)
        except httpx.TransportError as e:
            details = str(e) or e.__class__.__name__
            logger.error(f"Proxy error: {request.method} {url}: {details}")
            self._notify_error(UpstreamError(details, {"url": str(url)}))
            return JSONResponse(
                {"error": "Bad gateway", "details": details}, status_code=502)

        background = BackgroundTasks()
        background.add_task(upstream.aclose)
        response = StreamingResponse(
            relay_body(upstream),
            status_code=upstream.status_code,
            background=background,
        )
        response.raw_headers = [
            (key.lower(), value) for key, value in upstream.headers.raw
            if key.lower() not in HOP_RESPONSE_HEADERS
        ]
        return response

    def _notify_routed(self, event: RoutedEvent) -> None:
        if self.on_routed is None:
            return
        try:
            self.on_routed(event)
        except Exception:
            logger.exception("on_routed hook failed")

    def _notify_error(self, error: Exception) -> None:
        if self.on_error is None:
            return
        try:
            self.on_error(error)
        except Exception:
            logger.exception("on_error hook failed")


def create_app(
    config: ProxyConfig,
    tier_models: TierModels | None = None,
    on_routed: RoutedHook | None = None,
    on_error: ErrorHook | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the proxy ASGI application.

    Args:
        config: Upstream URL, credential and default tier models.
        tier_models: Overrides config.tier_models when given.
        on_routed: Called synchronously for every auto-routed request.
        on_error: Called with RequestParseError / UpstreamError.
        transport: Custom httpx transport for the upstream (tests).
    """
    proxy = InterceptingProxy(
        config,
        tier_models=tier_models,
        on_routed=on_routed,
        on_error=on_error,
        transport=transport,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await proxy.aclose()

    # Docs routes off: every path except /health belongs to the upstream
    app = FastAPI(
        title="autoroute",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.proxy = proxy

    @app.api_route(HEALTH_PATH, methods=PROXY_METHODS)
    async def health():
        return {"status": "ok", "version": __version__}

    @app.api_route("/{path:path}", methods=PROXY_METHODS)
    async def intercept(request: Request):
        return await proxy.handle(request)

    return app
