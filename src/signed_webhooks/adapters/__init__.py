"""Framework adapters for signed webhooks.

- asgi.py: Starlette application and endpoint for the receiver pipeline,
  also mountable in FastAPI
"""

from signed_webhooks.adapters.asgi import WebhookEndpoint, create_receiver_app

__all__ = ["WebhookEndpoint", "create_receiver_app"]
