"""Custom exceptions for signed webhook delivery and ingestion.

This module defines the exception hierarchy used on both sides of the
protocol. The sender only ever raises ``TransportFailure`` internally and
converts it into a ``False`` delivery result; the receiver pipeline raises a
``RejectionError`` subclass from the stage that rejected the request and
converts it into an HTTP response at a single seam.

Examples:
    Rejecting a request from a pipeline stage::

        from signed_webhooks.exceptions import SignatureError

        if not verify(secret, timestamp, body, signature):
            raise SignatureError("Invalid signature")

    Converting a rejection into a response::

        try:
            payload = await pipeline.validate(request)
        except RejectionError as e:
            return JSONResponse({"ok": False, "message": e.message}, status_code=e.status_code)
"""


class WebhookError(Exception):
    """Base exception for all signed webhook errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        """Initialize the exception with a message.

        Args:
            message: Human-readable error description.
        """
        self.message = message
        super().__init__(message)


class TransportFailure(WebhookError):
    """A delivery attempt failed before a response was received.

    Covers both network errors and per-attempt timeouts. The sender treats
    this as retryable and never lets it escape ``deliver()``.

    Attributes:
        message: Human-readable error description.
        attempt: The attempt number that failed (1-based).
        timed_out: True if the attempt exceeded its timeout.
    """

    def __init__(self, message: str, attempt: int, timed_out: bool = False) -> None:
        super().__init__(message)
        self.attempt = attempt
        self.timed_out = timed_out


class RejectionError(WebhookError):
    """An inbound request was rejected by a receiver pipeline stage.

    Every rejection is terminal for the request. Subclasses fix the HTTP
    status code that the receiver answers with.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code for the rejection.
        reason: Short machine-readable reason used for logs and metrics.
    """

    status_code = 400
    reason = "rejected"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class PayloadTooLargeError(RejectionError):
    """Request body exceeds the configured maximum size.

    Checked before authentication; oversized bodies never reach the auth stage.

    Attributes:
        message: Human-readable error description.
        limit: The configured maximum body size in bytes.
    """

    status_code = 413
    reason = "payload_too_large"

    def __init__(self, message: str, limit: int) -> None:
        super().__init__(message)
        self.limit = limit


class AuthenticationError(RejectionError):
    """Missing or incorrect bearer token."""

    status_code = 401
    reason = "unauthorized"


class SignatureError(RejectionError):
    """Missing signature or timestamp header, or signature mismatch."""

    status_code = 401
    reason = "invalid_signature"


class StaleTimestampError(RejectionError):
    """Timestamp falls outside the freshness window.

    Attributes:
        message: Human-readable error description.
        timestamp_ms: The timestamp supplied by the sender.
        skew_ms: Absolute difference from the receiver clock in milliseconds.
    """

    status_code = 401
    reason = "stale_timestamp"

    def __init__(self, message: str, timestamp_ms: int, skew_ms: int) -> None:
        super().__init__(message)
        self.timestamp_ms = timestamp_ms
        self.skew_ms = skew_ms


class ReplayError(RejectionError):
    """An identical signed request was already accepted within the TTL.

    Attributes:
        message: Human-readable error description.
        fingerprint: The replay fingerprint that was already present.
    """

    status_code = 401
    reason = "replay"

    def __init__(self, message: str, fingerprint: str) -> None:
        super().__init__(message)
        self.fingerprint = fingerprint


class MalformedPayloadError(RejectionError):
    """Verified body is not valid JSON."""

    status_code = 400
    reason = "malformed_payload"


class StorageError(WebhookError):
    """Replay store operation failed.

    Raised when the backend behind a replay store (for example Redis) cannot
    complete a check-and-insert. The receiver fails closed on this error: a
    request whose replay status is unknown is never dispatched.

    Attributes:
        message: Human-readable error description.
        cause: The underlying exception that caused the storage error.

    Examples:
        Wrapping a backend error::

            try:
                was_set = await client.set(key, "1", nx=True, px=ttl_ms)
            except RedisError as e:
                raise StorageError(f"Replay check failed: {e}", cause=e) from e
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause
