"""Observability utilities for signed webhooks.

This package provides:
- Prometheus metrics for sender and receiver behavior
- Structured logging with contextual information
"""

from signed_webhooks.observability.logging import configure_logging, get_logger
from signed_webhooks.observability.metrics import (
    record_attempt,
    record_cleanup,
    record_delivery,
    record_receiver_request,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "record_attempt",
    "record_cleanup",
    "record_delivery",
    "record_receiver_request",
]
