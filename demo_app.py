"""Demo FastAPI application with a signed webhook receiver.

This application mounts the receiver pipeline at /hooks/tickets and prints
every verified ticket event it receives.

Run with:
    PRIVATE_LOG_TOKEN=testtoken PRIVATE_LOG_HMAC_SECRET=testsecret python demo_app.py

Then deliver a signed event from another shell:
    PRIVATE_LOG_HMAC_SECRET=testsecret python demo_app.py send
"""

import asyncio
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import uvicorn
from fastapi import FastAPI

from signed_webhooks.adapters.asgi import WebhookEndpoint
from signed_webhooks.config import DeliveryOptions, ReceiverConfig
from signed_webhooks.core.cleanup import start_cleanup_task, stop_cleanup_task
from signed_webhooks.core.pipeline import InboundRequest, ReceiverPipeline
from signed_webhooks.core.sender import deliver
from signed_webhooks.observability.logging import configure_logging, get_logger
from signed_webhooks.storage.memory import MemoryReplayStore

configure_logging(level="INFO", json_output=False)
logger = get_logger("demo_app")

config = ReceiverConfig.from_env()
store = MemoryReplayStore()


async def handle_ticket_event(payload: Any, request: InboundRequest) -> dict[str, Any]:
    """Business handler: log the event and echo its type."""
    event = payload.get("event") if isinstance(payload, dict) else None
    logger.info("demo.ticket_event", event=event, received_at=datetime.now(UTC).isoformat())
    return {"event": event}


pipeline = ReceiverPipeline(config, store, handle_ticket_event)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    cleanup_task = await start_cleanup_task(store, config.cleanup_interval_seconds)
    try:
        yield
    finally:
        await stop_cleanup_task(cleanup_task)


app = FastAPI(
    title="Signed Webhook Receiver Demo",
    description="Receives signed ticket events",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_route(config.path, WebhookEndpoint(pipeline), methods=["POST"])


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint - returns receiver info."""
    return {
        "name": "Signed Webhook Receiver Demo",
        "endpoint": f"POST {config.path}",
        "auth": "enabled" if config.token else "disabled",
        "signing": "enabled" if config.signing_enabled else "disabled",
        "ttl_seconds": config.hmac_ttl,
    }


async def send_sample(url: str) -> bool:
    """Deliver a sample ticket_closed event to a running receiver."""
    payload = {
        "event": "ticket_closed",
        "ticket": {"id": 1003, "guild_id": "987654321", "subject": "Teste final"},
        "messages": [
            {
                "content": "Teste final payload",
                "author": "User#0001",
                "ts": datetime.now(UTC).isoformat(),
            }
        ],
    }
    return await deliver(url, config.token, payload, DeliveryOptions.from_env())


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "send":
        target = sys.argv[2] if len(sys.argv) > 2 else f"http://localhost:3001{config.path}"
        delivered = asyncio.run(send_sample(target))
        print("delivered" if delivered else "failed")
        sys.exit(0 if delivered else 1)

    uvicorn.run(app, host="0.0.0.0", port=3001, log_level="info")
