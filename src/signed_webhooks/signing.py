"""Timestamped HMAC-SHA256 signing for webhook bodies.

The signature covers the ASCII decimal timestamp (epoch milliseconds), a
literal ``.`` and the raw body bytes::

    X-Signature: sha256=hex(HMAC_SHA256(secret, b"<timestamp>." + raw_body))

Everything here operates on the exact byte buffer that travels as the request
body. Callers must never sign a re-serialized copy of the payload: a different
key order or whitespace breaks verification on the other side.
"""

import hashlib
import hmac
import json
import time
from collections.abc import Callable
from typing import Any

SIGNATURE_PREFIX = "sha256="


def _as_bytes(value: str | bytes) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def now_millis(clock: Callable[[], float] = time.time) -> int:
    """Return the current time as integer epoch milliseconds."""
    return int(clock() * 1000)


def serialize_payload(payload: Any) -> bytes:
    """Serialize a payload to the compact UTF-8 JSON bytes that get signed and sent.

    Produces the same shape as ``JSON.stringify``: no whitespace between
    tokens and non-ASCII characters left unescaped.

    Example:
        >>> serialize_payload({"event": "hmac_test", "x": 1})
        b'{"event":"hmac_test","x":1}'
    """
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def signing_input(timestamp: int, raw_body: bytes) -> bytes:
    """Build the byte string the HMAC is computed over."""
    return f"{timestamp}.".encode("ascii") + raw_body


def sign(secret: str | bytes, timestamp: int, raw_body: bytes) -> str:
    """Compute the signature header value for a body.

    Args:
        secret: Shared HMAC secret
        timestamp: Signing timestamp in epoch milliseconds
        raw_body: Exact request body bytes

    Returns:
        ``"sha256=<hex digest>"``

    Examples:
        >>> sig = sign("testsecret", 1700000000000, b'{"x":1}')
        >>> sig.startswith("sha256=") and len(sig) == 71
        True
    """
    digest = hmac.new(
        _as_bytes(secret),
        signing_input(timestamp, raw_body),
        hashlib.sha256,
    ).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify(
    secret: str | bytes,
    timestamp: int,
    raw_body: bytes,
    signature: str | None,
) -> bool:
    """Check a supplied signature header value against the body.

    The comparison is constant-time (``hmac.compare_digest``).

    Args:
        secret: Shared HMAC secret
        timestamp: Timestamp the sender claims to have signed with
        raw_body: Raw, unmodified request body bytes
        signature: Supplied ``sha256=<hex>`` header value

    Returns:
        True if the signature matches, False otherwise (including when the
        signature is missing or malformed)
    """
    if not signature:
        return False

    expected = sign(secret, timestamp, raw_body)
    return hmac.compare_digest(expected.encode("ascii"), signature.strip().encode("utf-8"))


def build_signature_headers(
    secret: str | bytes,
    timestamp: int,
    raw_body: bytes,
    signature_header: str = "X-Signature",
    timestamp_header: str = "X-Timestamp",
) -> dict[str, str]:
    """Return the signature and timestamp headers for a body.

    Example:
        >>> headers = build_signature_headers("s", 1, b"{}")
        >>> sorted(headers)
        ['X-Signature', 'X-Timestamp']
    """
    return {
        signature_header: sign(secret, timestamp, raw_body),
        timestamp_header: str(timestamp),
    }


def parse_timestamp(value: str | None) -> int | None:
    """Parse a timestamp header value into integer milliseconds.

    Returns:
        The timestamp, or None if the value is missing or not a
        non-negative decimal integer
    """
    if value is None:
        return None

    value = value.strip()
    if not value.isascii() or not value.isdigit():
        return None

    return int(value)


def replay_fingerprint(
    signature: str,
    timestamp: int,
    raw_body: bytes,
    replay_key: str = "signature",
) -> str:
    """Compute the replay-store key for an accepted request.

    The signature already binds the timestamp and body, so the signature alone
    identifies a signed envelope. The wider compositions exist for stores
    shared between receivers that use different secrets.

    Args:
        signature: The verified signature header value
        timestamp: The verified timestamp
        raw_body: The raw request body
        replay_key: "signature", "signature_timestamp" or "full"

    Returns:
        Hex SHA-256 digest identifying the request (64 characters)

    Raises:
        ValueError: If replay_key is unknown
    """
    if replay_key == "signature":
        components = [signature]
    elif replay_key == "signature_timestamp":
        components = [signature, str(timestamp)]
    elif replay_key == "full":
        components = [signature, str(timestamp), hashlib.sha256(raw_body).hexdigest()]
    else:
        raise ValueError(f"Unknown replay_key: {replay_key!r}")

    return hashlib.sha256("\n".join(components).encode("utf-8")).hexdigest()
