"""
Signed webhook delivery and ingestion.

This package provides an outbound sender that forwards JSON payloads with a
timestamped HMAC-SHA256 signature, bounded retries and per-attempt timeouts,
and the matching receiver pipeline that authenticates, verifies, checks
freshness and rejects replays before dispatching to a business handler.
"""

from signed_webhooks.config import DeliveryOptions, ReceiverConfig
from signed_webhooks.core.sender import WebhookSender, deliver, deliver_in_background
from signed_webhooks.signing import sign, verify

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "DeliveryOptions",
    "ReceiverConfig",
    "WebhookSender",
    "deliver",
    "deliver_in_background",
    "sign",
    "verify",
]
