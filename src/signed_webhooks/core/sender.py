"""Outbound delivery client for signed webhooks.

The sender forwards one JSON payload to an HTTP endpoint and reports a
boolean result. Per call it:

1. Serializes the payload once to compact JSON bytes
2. Takes one timestamp and, if a secret is configured, signs those bytes
3. POSTs the identical envelope up to ``max_attempts`` times, each attempt
   bounded by ``timeout_ms``, sleeping ``backoff_base_ms * n`` after a failed
   attempt n
4. Returns True on the first 2xx response, False once attempts run out

The sender never raises for network errors, timeouts or error responses, and
keeps no state between calls. Callers treat the result as a fire-and-forget
confirmation.

Examples:
    Delivering a ticket event::

        from signed_webhooks.config import DeliveryOptions
        from signed_webhooks.core.sender import deliver

        delivered = await deliver(
            "https://logs.example.com/hooks/tickets",
            token="testtoken",
            payload={"event": "ticket_closed", "ticket": {"id": 1003}},
            options=DeliveryOptions(hmac_secret="testsecret"),
        )

    Testing without a network or real sleeps::

        transport = httpx.MockTransport(lambda request: httpx.Response(200))
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)

        sender = WebhookSender(transport=transport, sleep=fake_sleep)
        report = await sender.deliver_report(url, None, {"a": 1})
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

import httpx

from signed_webhooks.config import DeliveryOptions
from signed_webhooks.core.state_machine import DeliveryStateMachine
from signed_webhooks.exceptions import TransportFailure
from signed_webhooks.models import (
    AttemptOutcome,
    DeliveryAttempt,
    DeliveryReport,
    DeliveryRequest,
    DeliveryState,
)
from signed_webhooks.observability.logging import get_logger
from signed_webhooks.observability.metrics import record_attempt, record_delivery
from signed_webhooks.signing import build_signature_headers, now_millis, serialize_payload
from signed_webhooks.utils.headers import build_delivery_headers, normalize_credential

logger = get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]


class WebhookSender:
    """Stateless delivery client.

    One sender can serve any number of concurrent ``deliver()`` calls: each
    call builds its own envelope, state machine and HTTP client.

    Attributes:
        transport: Optional httpx transport (tests inject MockTransport or
            ASGITransport here).
    """

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: SleepFunc = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the sender.

        Args:
            transport: httpx transport; None uses the default network transport
            sleep: Awaitable sleep used for backoff waits
            clock: Time source returning epoch seconds, used for the signing
                timestamp
        """
        self.transport = transport
        self._sleep = sleep
        self._clock = clock

    def build_request(
        self,
        url: str,
        token: str | None,
        payload: Any,
        options: DeliveryOptions,
    ) -> DeliveryRequest:
        """Build the signed envelope reused by every attempt of one delivery.

        Args:
            url: Target endpoint
            token: Bearer token, or None
            payload: JSON-serializable payload
            options: Delivery options

        Returns:
            Immutable DeliveryRequest

        Raises:
            TypeError: If the payload is not JSON-serializable
        """
        body = serialize_payload(payload)
        timestamp_ms = now_millis(self._clock)

        signature_headers = None
        if options.hmac_secret:
            signature_headers = build_signature_headers(
                options.hmac_secret,
                timestamp_ms,
                body,
                signature_header=options.signature_header_name,
                timestamp_header=options.timestamp_header_name,
            )

        return DeliveryRequest(
            url=url,
            body=body,
            timestamp_ms=timestamp_ms,
            headers=build_delivery_headers(normalize_credential(token), signature_headers),
            signed=signature_headers is not None,
        )

    async def deliver(
        self,
        url: str | None,
        token: str | None,
        payload: Any,
        options: DeliveryOptions | None = None,
    ) -> bool:
        """Deliver a payload and return whether any attempt succeeded."""
        report = await self.deliver_report(url, token, payload, options)
        return report.delivered

    async def deliver_report(
        self,
        url: str | None,
        token: str | None,
        payload: Any,
        options: DeliveryOptions | None = None,
    ) -> DeliveryReport:
        """Deliver a payload and return the full attempt history.

        Args:
            url: Target endpoint; empty, None or malformed fails immediately
            token: Bearer token, or None
            payload: JSON-serializable payload
            options: Delivery options; None loads them from the environment

        Returns:
            DeliveryReport in state SUCCEEDED or FAILED
        """
        started = time.monotonic()

        if not url:
            logger.warning("delivery.skipped", reason="missing_url")
            record_delivery("skipped", time.monotonic() - started)
            return DeliveryReport(delivered=False, state=DeliveryState.FAILED)

        try:
            httpx.URL(url)
        except httpx.InvalidURL as e:
            logger.error("delivery.skipped", reason="invalid_url", url=url, error=str(e))
            record_delivery("skipped", time.monotonic() - started)
            return DeliveryReport(delivered=False, state=DeliveryState.FAILED)

        if options is None:
            options = DeliveryOptions.from_env()

        request = self.build_request(url, token, payload, options)

        if request.signed and options.retry_window_ms > options.ttl_seconds * 1000:
            logger.warning(
                "delivery.retry_window_exceeds_ttl",
                url=url,
                retry_window_ms=options.retry_window_ms,
                ttl_seconds=options.ttl_seconds,
            )

        machine = DeliveryStateMachine(options.max_attempts)
        attempts: list[DeliveryAttempt] = []

        async with httpx.AsyncClient(
            transport=self.transport,
            timeout=httpx.Timeout(options.timeout_ms / 1000),
            follow_redirects=False,
        ) as client:
            while not machine.is_terminal:
                attempt_number = machine.start_attempt()
                attempt = await self._attempt(client, request, attempt_number, options)
                attempts.append(attempt)
                record_attempt(attempt.outcome.value)

                if attempt.outcome == AttemptOutcome.SUCCESS:
                    machine.record_success()
                    break

                logger.warning(
                    "delivery.attempt_failed",
                    url=url,
                    attempt=attempt_number,
                    max_attempts=options.max_attempts,
                    outcome=attempt.outcome.value,
                    status_code=attempt.status_code,
                    error=attempt.error,
                )

                if machine.record_failure() == DeliveryState.BACKOFF:
                    await self._sleep(options.backoff_ms(attempt_number) / 1000)

        delivered = machine.state == DeliveryState.SUCCEEDED
        duration = time.monotonic() - started
        record_delivery("delivered" if delivered else "failed", duration)

        if delivered:
            logger.info("delivery.succeeded", url=url, attempts=len(attempts))
        else:
            logger.error("delivery.failed", url=url, attempts=len(attempts))

        return DeliveryReport(delivered=delivered, state=machine.state, attempts=attempts)

    async def _attempt(
        self,
        client: httpx.AsyncClient,
        request: DeliveryRequest,
        attempt_number: int,
        options: DeliveryOptions,
    ) -> DeliveryAttempt:
        """Issue one POST and classify how it ended."""
        started_at = datetime.now(UTC)
        status_code = None
        error = None

        try:
            response = await self._send(client, request, attempt_number, options)
        except TransportFailure as e:
            outcome = AttemptOutcome.TIMEOUT if e.timed_out else AttemptOutcome.NETWORK_ERROR
            error = e.message
        else:
            status_code = response.status_code
            if response.is_success:
                outcome = AttemptOutcome.SUCCESS
            else:
                outcome = AttemptOutcome.HTTP_ERROR
                error = response.reason_phrase or None

        return DeliveryAttempt(
            attempt_number=attempt_number,
            outcome=outcome,
            started_at=started_at,
            ended_at=datetime.now(UTC),
            status_code=status_code,
            error=error,
        )

    async def _send(
        self,
        client: httpx.AsyncClient,
        request: DeliveryRequest,
        attempt_number: int,
        options: DeliveryOptions,
    ) -> httpx.Response:
        """POST the envelope within the per-attempt timeout.

        Raises:
            TransportFailure: On timeout or any transport-level error.
        """
        try:
            return await asyncio.wait_for(
                client.post(request.url, content=request.body, headers=request.headers),
                timeout=options.timeout_ms / 1000,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise TransportFailure(
                f"Attempt timed out after {options.timeout_ms}ms",
                attempt=attempt_number,
                timed_out=True,
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportFailure(
                f"{type(e).__name__}: {e}",
                attempt=attempt_number,
            ) from e


_default_sender = WebhookSender()

# Strong references to fire-and-forget tasks until they finish
_background_tasks: set[asyncio.Task[bool]] = set()


async def deliver(
    url: str | None,
    token: str | None,
    payload: Any,
    options: DeliveryOptions | None = None,
) -> bool:
    """Deliver a payload with the default sender.

    Args:
        url: Target endpoint; empty or None returns False without a request
        token: Bearer token, or None
        payload: JSON-serializable payload
        options: Delivery options; None loads them from ``PRIVATE_LOG_*``
            environment variables

    Returns:
        True if the endpoint acknowledged the delivery with a 2xx status
    """
    return await _default_sender.deliver(url, token, payload, options)


def deliver_in_background(
    url: str | None,
    token: str | None,
    payload: Any,
    options: DeliveryOptions | None = None,
    sender: WebhookSender | None = None,
) -> "asyncio.Task[bool]":
    """Schedule a delivery without waiting for it.

    Must be called from a running event loop. The returned task resolves to
    the delivery result; callers may ignore it.
    """
    task = asyncio.create_task((sender or _default_sender).deliver(url, token, payload, options))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task
