"""ASGI receiver for Starlette and FastAPI applications.

This module exposes the receiver pipeline over HTTP:

1. Enforces the body size limit while streaming, before the body is buffered
2. Converts the Starlette request to the internal InboundRequest format
3. Runs the pipeline and converts its response back to JSON

Examples:
    Standalone receiver app::

        from signed_webhooks.adapters.asgi import create_receiver_app
        from signed_webhooks.config import ReceiverConfig

        async def handle_ticket(payload, request):
            print(payload["event"])

        app = create_receiver_app(handle_ticket, ReceiverConfig.from_env())

    Mounting the endpoint in a FastAPI application::

        from fastapi import FastAPI

        app = FastAPI()
        pipeline = ReceiverPipeline(config, MemoryReplayStore(), handle_ticket)
        app.add_route("/hooks/tickets", WebhookEndpoint(pipeline), methods=["POST"])
"""

import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from starlette.applications import Starlette
from starlette.requests import Request as StarletteRequest
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from signed_webhooks.config import ReceiverConfig
from signed_webhooks.core.cleanup import start_cleanup_task, stop_cleanup_task
from signed_webhooks.core.pipeline import (
    InboundRequest,
    PayloadHandler,
    ReceiverPipeline,
    ReceiverResponse,
)
from signed_webhooks.exceptions import PayloadTooLargeError
from signed_webhooks.storage.base import ReplayStore
from signed_webhooks.storage.memory import MemoryReplayStore


async def read_body_limited(request: StarletteRequest, limit: int) -> bytes:
    """Read the request body, giving up as soon as it exceeds ``limit`` bytes.

    A declared Content-Length over the limit is rejected without reading
    anything; otherwise the stream is counted chunk by chunk.

    Args:
        request: Starlette request
        limit: Maximum body size in bytes

    Returns:
        The complete body

    Raises:
        PayloadTooLargeError: If the body is larger than ``limit``
    """
    declared = request.headers.get("content-length")
    if declared is not None and declared.strip().isdigit() and int(declared) > limit:
        raise PayloadTooLargeError(f"Payload exceeds {limit} bytes", limit=limit)

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise PayloadTooLargeError(f"Payload exceeds {limit} bytes", limit=limit)

    return bytes(body)


class WebhookEndpoint:
    """ASGI endpoint running the receiver pipeline.

    Usable as a Starlette ``Route`` endpoint or with FastAPI's
    ``add_route``.

    Attributes:
        pipeline: The receiver pipeline
    """

    def __init__(self, pipeline: ReceiverPipeline) -> None:
        self.pipeline = pipeline

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = StarletteRequest(scope, receive)
        response = await self.handle(request)
        await response(scope, receive, send)

    async def handle(self, request: StarletteRequest) -> Response:
        """Process one Starlette request through the pipeline."""
        try:
            body = await read_body_limited(request, self.pipeline.config.max_body_bytes)
        except PayloadTooLargeError as e:
            return self._convert_response(self.pipeline.reject(e, request.url.path))

        result = await self.pipeline.process(self._convert_request(request, body))
        return self._convert_response(result)

    def _convert_request(self, request: StarletteRequest, body: bytes) -> InboundRequest:
        """Convert a Starlette request to the internal format.

        Header lookups inside the pipeline are case-insensitive, so the
        lowercase names Starlette provides are kept as they are.
        """
        headers: dict[str, str] = {}
        for key, value in request.headers.items():
            headers[key] = value

        return InboundRequest(
            method=request.method,
            path=request.url.path,
            headers=headers,
            body=body,
        )

    def _convert_response(self, response: ReceiverResponse) -> Response:
        return JSONResponse(response.body, status_code=response.status)


async def health(_request: StarletteRequest) -> Response:
    return PlainTextResponse("Private receiver running")


def create_receiver_app(
    handler: PayloadHandler,
    config: ReceiverConfig | None = None,
    store: ReplayStore | None = None,
    clock: Callable[[], float] = time.time,
    run_cleanup: bool = True,
) -> Starlette:
    """Build a Starlette application serving the receiver.

    Routes:
        POST <config.path>  receiver pipeline
        GET  /              health text

    Anything else gets Starlette's 404 (or 405 for a wrong method).

    Args:
        handler: Business handler for verified payloads
        config: Receiver configuration; None loads it from the environment
        store: Replay store; None creates a MemoryReplayStore
        clock: Time source for freshness and the memory store
        run_cleanup: Run the replay-store sweep for the app's lifetime

    Returns:
        The Starlette application. ``app.state.pipeline`` and
        ``app.state.replay_store`` expose the wiring.
    """
    if config is None:
        config = ReceiverConfig.from_env()
    if store is None:
        store = MemoryReplayStore(clock=clock)

    pipeline = ReceiverPipeline(config, store, handler, clock=clock)

    @asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        task = None
        if run_cleanup:
            task = await start_cleanup_task(store, config.cleanup_interval_seconds)
        try:
            yield
        finally:
            if task is not None:
                await stop_cleanup_task(task)

    app = Starlette(
        routes=[
            Route(config.path, WebhookEndpoint(pipeline), methods=["POST"]),
            Route("/", health, methods=["GET"]),
        ],
        lifespan=lifespan,
    )
    app.state.pipeline = pipeline
    app.state.replay_store = store
    return app
