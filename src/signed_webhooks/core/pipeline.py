"""Framework-agnostic validation pipeline for inbound webhooks.

The pipeline runs a fixed chain of short-circuiting stages over one request::

    Received -> SizeChecked -> Authenticated -> SignatureVerified
             -> Fresh -> NotReplayed -> Dispatched(200)

Each stage either raises a ``RejectionError`` (terminal for the request) or
passes control on. Rejections are converted to responses in one place,
``ReceiverPipeline.process``:

    ==================  ======
    Stage               Status
    ==================  ======
    size guard          413
    authentication      401
    signature           401
    freshness           401
    replay detection    401
    JSON parsing        400
    ==================  ======

The signature, freshness and replay stages run only when the receiver has an
HMAC secret; they all depend on a verified signature and timestamp.

Examples:
    Using the pipeline directly::

        store = MemoryReplayStore()
        config = ReceiverConfig(token="testtoken", hmac_secret="testsecret")

        async def handle_ticket(payload, request):
            await tickets.archive(payload)

        pipeline = ReceiverPipeline(config, store, handle_ticket)
        response = await pipeline.process(
            InboundRequest(method="POST", path="/hooks/tickets", headers=headers, body=raw)
        )
"""

import hmac
import json
import math
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from signed_webhooks.config import ReceiverConfig
from signed_webhooks.exceptions import (
    AuthenticationError,
    MalformedPayloadError,
    PayloadTooLargeError,
    RejectionError,
    ReplayError,
    SignatureError,
    StaleTimestampError,
    StorageError,
)
from signed_webhooks.observability.logging import get_logger
from signed_webhooks.observability.metrics import record_receiver_request
from signed_webhooks.signing import now_millis, parse_timestamp, replay_fingerprint, verify
from signed_webhooks.storage.base import ReplayStore
from signed_webhooks.utils.headers import (
    extract_bearer_token,
    get_header,
    mask_credential,
    normalize_credential,
)

logger = get_logger(__name__)


class InboundRequest:
    """Abstract inbound request representation.

    Framework adapters convert their request objects into this format after
    the streaming size guard has run.

    Attributes:
        method: HTTP method
        path: URL path
        headers: Request headers
        body: Raw, unmodified request body
    """

    def __init__(
        self,
        method: str,
        path: str,
        headers: Mapping[str, str],
        body: bytes,
    ) -> None:
        self.method = method
        self.path = path
        self.headers = headers
        self.body = body


class ReceiverResponse:
    """Response produced by the pipeline.

    Attributes:
        status: HTTP status code
        body: JSON-serializable response body
    """

    def __init__(self, status: int, body: dict[str, Any]) -> None:
        self.status = status
        self.body = body


# Business handler: receives the parsed payload and the request; may return
# extra fields for the 200 response body.
PayloadHandler = Callable[[Any, InboundRequest], Awaitable[dict[str, Any] | None]]


def _constant_time_equals(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


class ReceiverPipeline:
    """Validation pipeline for one receiver endpoint.

    Attributes:
        config: Receiver configuration
        store: Replay store shared by all requests of this receiver
        handler: Business handler called with verified payloads
    """

    def __init__(
        self,
        config: ReceiverConfig,
        store: ReplayStore,
        handler: PayloadHandler,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: Receiver configuration
            store: Replay store
            handler: Business handler
            clock: Time source returning epoch seconds, used for freshness
        """
        self.config = config
        self.store = store
        self.handler = handler
        self._clock = clock

        logger.info(
            "receiver.configured",
            path=config.path,
            token=mask_credential(config.token),
            signing=config.signing_enabled,
            hmac_ttl=config.hmac_ttl,
            replay_key=config.replay_key,
        )
        if config.token is None:
            logger.warning("receiver.auth_disabled", path=config.path)
        if not config.signing_enabled:
            logger.warning("receiver.signing_disabled", path=config.path)

    async def process(self, request: InboundRequest) -> ReceiverResponse:
        """Run all stages and produce the response.

        Args:
            request: The inbound request

        Returns:
            ReceiverResponse; never raises for rejected input
        """
        try:
            payload = await self.validate(request)
        except RejectionError as e:
            return self.reject(e, request.path)
        except StorageError as e:
            logger.error("receiver.replay_store_failed", path=request.path, error=e.message)
            record_receiver_request("storage_error", 503)
            return ReceiverResponse(503, {"ok": False, "message": "Replay store unavailable"})

        try:
            extra = await self.handler(payload, request)
        except Exception as e:
            logger.error(
                "receiver.handler_failed",
                path=request.path,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            record_receiver_request("handler_error", 500)
            return ReceiverResponse(500, {"ok": False, "message": "Handler error"})

        record_receiver_request("accepted", 200)
        logger.info("receiver.accepted", path=request.path)
        return ReceiverResponse(200, {"ok": True, **(extra or {})})

    def reject(self, error: RejectionError, path: str) -> ReceiverResponse:
        """Log, count and convert a rejection into its response."""
        logger.warning(
            "receiver.rejected",
            reason=error.reason,
            status_code=error.status_code,
            path=path,
            message=error.message,
        )
        record_receiver_request(error.reason, error.status_code)
        return ReceiverResponse(error.status_code, {"ok": False, "message": error.message})

    async def validate(self, request: InboundRequest) -> Any:
        """Run every stage in order and return the verified, parsed payload.

        Raises:
            RejectionError: From the first stage that rejects the request
            StorageError: If the replay store fails
        """
        self.check_size(len(request.body))
        self.authenticate(request.headers)

        if self.config.signing_enabled:
            signature, timestamp = self.verify_signature(request.headers, request.body)
            self.check_freshness(timestamp)
            await self.check_replay(signature, timestamp, request.body)

        return self.parse_payload(request.body)

    def check_size(self, length: int) -> None:
        """Reject bodies larger than ``max_body_bytes``."""
        limit = self.config.max_body_bytes
        if length > limit:
            raise PayloadTooLargeError(f"Payload exceeds {limit} bytes", limit=limit)

    def authenticate(self, headers: Mapping[str, str]) -> None:
        """Require the configured bearer token.

        Disabled when no token is configured.
        """
        expected = self.config.token
        if expected is None:
            return

        supplied = extract_bearer_token(headers)
        if supplied is not None and _constant_time_equals(supplied, expected):
            return

        if self.config.allow_alt_token_header:
            alt = normalize_credential(get_header(headers, self.config.alt_token_header))
            if alt is not None and _constant_time_equals(alt, expected):
                return

        raise AuthenticationError("Unauthorized")

    def verify_signature(self, headers: Mapping[str, str], body: bytes) -> tuple[str, int]:
        """Verify the signature over the raw body.

        Returns:
            The supplied signature and the parsed timestamp
        """
        signature = get_header(headers, self.config.signature_header)
        timestamp = parse_timestamp(get_header(headers, self.config.timestamp_header))

        if not signature or timestamp is None:
            raise SignatureError("Missing signature or timestamp")

        # signing_enabled guarantees a secret here
        if not verify(self.config.hmac_secret or "", timestamp, body, signature):
            raise SignatureError("Invalid signature")

        return signature.strip(), timestamp

    def check_freshness(self, timestamp: int) -> None:
        """Reject timestamps more than ``hmac_ttl`` seconds away, in either direction."""
        skew_ms = abs(now_millis(self._clock) - timestamp)
        if skew_ms > self.config.hmac_ttl * 1000:
            raise StaleTimestampError(
                "Timestamp outside allowed window",
                timestamp_ms=timestamp,
                skew_ms=skew_ms,
            )

    async def check_replay(self, signature: str, timestamp: int, body: bytes) -> None:
        """Record the fingerprint, or reject if it is already live."""
        fingerprint = replay_fingerprint(signature, timestamp, body, self.config.replay_key)
        if not await self.store.check_and_insert(fingerprint, self.replay_ttl(timestamp)):
            raise ReplayError("Replay detected", fingerprint=fingerprint)

    def replay_ttl(self, timestamp: int) -> int:
        """Seconds a fingerprint must live so it outlasts its timestamp's freshness.

        A request stays fresh until ``timestamp + hmac_ttl`` inclusive, which is
        later than ``now + hmac_ttl`` for future-dated timestamps.
        """
        now_ms = now_millis(self._clock)
        fresh_until_ms = max(now_ms, timestamp) + self.config.hmac_ttl * 1000
        # +1ms: the window end itself is still fresh
        return math.ceil((fresh_until_ms - now_ms + 1) / 1000)

    def parse_payload(self, body: bytes) -> Any:
        """Parse the verified body as JSON; an empty body is an empty object."""
        if not body.strip():
            return {}
        try:
            return json.loads(body)
        except ValueError as e:
            raise MalformedPayloadError("Invalid JSON") from e
