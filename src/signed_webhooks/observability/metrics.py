"""Prometheus metrics for signed webhook delivery and ingestion.

Sender metrics:

- Deliveries by final result (delivered, failed, skipped)
- Attempts by outcome (success, network_error, timeout, http_error)
- End-to-end delivery duration

Receiver metrics:

- Requests by result (accepted, rejection reason) and status code
- Replay-store size and cleanup tracking

Examples:
    Recording a receiver rejection::

        from signed_webhooks.observability.metrics import record_receiver_request

        record_receiver_request(result="replay", status_code=401)
"""

from prometheus_client import Counter, Gauge, Histogram

# Labels: result (delivered, failed, skipped)
deliveries_total = Counter(
    "webhook_deliveries_total",
    "Total number of outbound webhook deliveries by final result",
    ["result"],
)

# Labels: outcome (success, network_error, timeout, http_error)
delivery_attempts_total = Counter(
    "webhook_delivery_attempts_total",
    "Total number of outbound delivery attempts by outcome",
    ["outcome"],
)

delivery_duration_seconds = Histogram(
    "webhook_delivery_duration_seconds",
    "Duration of a deliver() call including retries and backoff",
    buckets=[0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30],
)

# Labels: result (accepted, unauthorized, invalid_signature, ...), status_code
receiver_requests_total = Counter(
    "webhook_receiver_requests_total",
    "Total number of inbound webhook requests by result",
    ["result", "status_code"],
)

replay_store_size = Gauge(
    "webhook_replay_store_size",
    "Number of live fingerprints in the replay store",
)

cleanup_operations = Counter(
    "webhook_replay_cleanup_operations_total",
    "Total number of replay-store cleanup operations performed",
)

cleanup_records_removed = Counter(
    "webhook_replay_cleanup_records_removed_total",
    "Total number of expired fingerprints removed by cleanup",
)


def record_delivery(result: str, duration_seconds: float) -> None:
    """Record the final result of a deliver() call.

    Args:
        result: delivered, failed or skipped
        duration_seconds: Wall time of the call
    """
    deliveries_total.labels(result=result).inc()
    delivery_duration_seconds.observe(duration_seconds)


def record_attempt(outcome: str) -> None:
    """Record one delivery attempt by outcome."""
    delivery_attempts_total.labels(outcome=outcome).inc()


def record_receiver_request(result: str, status_code: int) -> None:
    """Record an inbound request.

    Examples:
        >>> record_receiver_request("accepted", 200)
        >>> record_receiver_request("payload_too_large", 413)
    """
    receiver_requests_total.labels(result=result, status_code=str(status_code)).inc()


def set_replay_store_size(size: int) -> None:
    replay_store_size.set(size)


def record_cleanup(records_removed: int) -> None:
    """Record a cleanup operation.

    Args:
        records_removed: Number of expired fingerprints removed
    """
    cleanup_operations.inc()
    cleanup_records_removed.inc(records_removed)
