"""Core protocol logic for signed webhooks.

This package contains:
- Sender: outbound delivery with signing, timeouts and linear backoff
- State machine: delivery states (IDLE -> ATTEMPTING -> BACKOFF -> SUCCEEDED/FAILED)
- Pipeline: framework-agnostic receiver validation chain
- Cleanup: background sweep of expired replay fingerprints
"""

from signed_webhooks.core.pipeline import InboundRequest, ReceiverPipeline, ReceiverResponse
from signed_webhooks.core.sender import WebhookSender, deliver, deliver_in_background

__all__ = [
    "InboundRequest",
    "ReceiverPipeline",
    "ReceiverResponse",
    "WebhookSender",
    "deliver",
    "deliver_in_background",
]
