"""Core type definitions for signed webhook delivery and replay detection.

This module provides the data structures shared by the sender, the receiver
pipeline and the replay stores: delivery states and attempts, the immutable
signed envelope that a delivery resends on every attempt, and replay records.

Examples:
    Building a signed envelope::

        from signed_webhooks.models import DeliveryRequest

        request = DeliveryRequest(
            url="https://example.com/hooks/tickets",
            body=b'{"event":"ticket_closed"}',
            timestamp_ms=1700000000000,
            headers={"Content-Type": "application/json"},
        )

    Recording an attempt::

        attempt = DeliveryAttempt(
            attempt_number=1,
            outcome=AttemptOutcome.TIMEOUT,
            started_at=datetime.now(UTC),
            ended_at=datetime.now(UTC),
        )
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class DeliveryState(str, Enum):
    """State of one ``deliver()`` call.

    Attributes:
        IDLE: Envelope built, no attempt issued yet.
        ATTEMPTING: A POST is in flight.
        BACKOFF: Waiting before the next attempt.
        SUCCEEDED: The endpoint answered with a 2xx status.
        FAILED: All attempts were used without success.
    """

    IDLE = "IDLE"
    ATTEMPTING = "ATTEMPTING"
    BACKOFF = "BACKOFF"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class AttemptOutcome(str, Enum):
    """Result of a single delivery attempt.

    Attributes:
        SUCCESS: 2xx response.
        NETWORK_ERROR: The request failed before a response arrived.
        TIMEOUT: The attempt exceeded its timeout.
        HTTP_ERROR: The endpoint answered with a non-2xx status.
    """

    SUCCESS = "success"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    HTTP_ERROR = "http_error"


class DeliveryAttempt(BaseModel):
    """Record of one delivery attempt.

    Attributes:
        attempt_number: 1-based attempt index.
        outcome: How the attempt ended.
        started_at: When the POST was issued.
        ended_at: When the attempt ended.
        status_code: Response status, when a response was received.
        error: Error description for failed attempts.
    """

    attempt_number: int = Field(..., ge=1, examples=[1, 2, 3])
    outcome: AttemptOutcome
    started_at: datetime
    ended_at: datetime
    status_code: int | None = Field(default=None, ge=100, le=599)
    error: str | None = None

    @field_validator("ended_at")
    @classmethod
    def validate_ended_after_started(cls, v: datetime, info) -> datetime:
        """Validate that ended_at is not before started_at."""
        if "started_at" in info.data and v < info.data["started_at"]:
            raise ValueError("ended_at must not be before started_at")
        return v

    @property
    def duration_ms(self) -> int:
        return int((self.ended_at - self.started_at).total_seconds() * 1000)


class DeliveryRequest(BaseModel):
    """The signed envelope for one delivery.

    Built once per ``deliver()`` call and resent verbatim on every attempt:
    the body, timestamp and signature never change between retries.

    Attributes:
        url: Target endpoint.
        body: Exact JSON bytes that were signed and are transmitted.
        timestamp_ms: Signing timestamp in epoch milliseconds.
        headers: Complete outbound header set.
        signed: True if signature headers are present.
    """

    url: str = Field(..., min_length=1, examples=["https://example.com/hooks/tickets"])
    body: bytes
    timestamp_ms: int = Field(..., ge=0)
    headers: dict[str, str] = Field(default_factory=dict)
    signed: bool = False

    model_config = {"frozen": True}


class DeliveryReport(BaseModel):
    """Outcome of a ``deliver()`` call with its attempt history.

    Attributes:
        delivered: True if some attempt succeeded.
        state: Terminal state (SUCCEEDED or FAILED).
        attempts: Attempts in the order they were made.
    """

    delivered: bool
    state: DeliveryState
    attempts: list[DeliveryAttempt] = Field(default_factory=list)

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)


class ReplayRecord(BaseModel):
    """A fingerprint of an accepted request and when it stops counting.

    Attributes:
        fingerprint: Hex SHA-256 replay fingerprint (64 characters).
        created_at: Epoch seconds when the request was accepted.
        expires_at: Epoch seconds after which the record is logically absent.
    """

    fingerprint: str = Field(..., pattern=r"^[a-f0-9]{64}$")
    created_at: float
    expires_at: float

    @field_validator("expires_at")
    @classmethod
    def validate_expires_after_created(cls, v: float, info) -> float:
        """Validate that expires_at is after created_at."""
        if "created_at" in info.data and v <= info.data["created_at"]:
            raise ValueError("expires_at must be after created_at")
        return v

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now
