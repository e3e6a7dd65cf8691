"""End-to-end scenarios for signed webhook delivery and ingestion.

Each scenario drives a real ASGI receiver over HTTP (Starlette TestClient or
httpx.ASGITransport) and checks one aspect of the protocol.
"""
