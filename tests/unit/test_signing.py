"""Unit tests for timestamped HMAC signing.

Tests cover:
- Signature format and known digests
- Verification of valid, tampered and malformed signatures
- Payload serialization matching the sender's wire format
- Timestamp parsing
- Replay fingerprint composition
"""

import hashlib
import hmac

import pytest

from signed_webhooks.signing import (
    build_signature_headers,
    now_millis,
    parse_timestamp,
    replay_fingerprint,
    serialize_payload,
    sign,
    signing_input,
    verify,
)

SECRET = "testsecret"
TIMESTAMP = 1_700_000_000_000
BODY = b'{"event":"hmac_test","x":1}'


class TestSign:
    """Tests for sign()."""

    def test_signature_format(self) -> None:
        signature = sign(SECRET, TIMESTAMP, BODY)
        assert signature.startswith("sha256=")
        assert len(signature) == len("sha256=") + 64

    def test_matches_manual_hmac_over_timestamp_dot_body(self) -> None:
        expected = hmac.new(
            SECRET.encode(),
            f"{TIMESTAMP}.".encode() + BODY,
            hashlib.sha256,
        ).hexdigest()
        assert sign(SECRET, TIMESTAMP, BODY) == f"sha256={expected}"

    def test_bytes_and_str_secret_agree(self) -> None:
        assert sign(SECRET, TIMESTAMP, BODY) == sign(SECRET.encode(), TIMESTAMP, BODY)

    def test_signing_input_layout(self) -> None:
        assert signing_input(42, b"{}") == b"42.{}"

    def test_empty_body_is_signable(self) -> None:
        assert verify(SECRET, TIMESTAMP, b"", sign(SECRET, TIMESTAMP, b""))

    def test_deterministic(self) -> None:
        assert sign(SECRET, TIMESTAMP, BODY) == sign(SECRET, TIMESTAMP, BODY)


class TestVerify:
    """Tests for verify()."""

    def test_valid_signature(self) -> None:
        assert verify(SECRET, TIMESTAMP, BODY, sign(SECRET, TIMESTAMP, BODY)) is True

    def test_wrong_secret(self) -> None:
        signature = sign("wrongsecret", TIMESTAMP, BODY)
        assert verify(SECRET, TIMESTAMP, BODY, signature) is False

    def test_wrong_timestamp(self) -> None:
        signature = sign(SECRET, TIMESTAMP, BODY)
        assert verify(SECRET, TIMESTAMP + 1, BODY, signature) is False

    def test_modified_body(self) -> None:
        signature = sign(SECRET, TIMESTAMP, BODY)
        assert verify(SECRET, TIMESTAMP, BODY.replace(b"1", b"2"), signature) is False

    def test_reserialized_body_fails(self) -> None:
        """Whitespace differences alone break verification."""
        signature = sign(SECRET, TIMESTAMP, BODY)
        assert verify(SECRET, TIMESTAMP, b'{"event": "hmac_test", "x": 1}', signature) is False

    @pytest.mark.parametrize("signature", [None, "", "sha256=", "not-a-signature", "sha256=zz"])
    def test_missing_or_malformed(self, signature: str | None) -> None:
        assert verify(SECRET, TIMESTAMP, BODY, signature) is False

    def test_missing_prefix(self) -> None:
        digest = sign(SECRET, TIMESTAMP, BODY).removeprefix("sha256=")
        assert verify(SECRET, TIMESTAMP, BODY, digest) is False

    def test_surrounding_whitespace_tolerated(self) -> None:
        signature = sign(SECRET, TIMESTAMP, BODY)
        assert verify(SECRET, TIMESTAMP, BODY, f"  {signature} ") is True

    def test_non_ascii_signature_rejected(self) -> None:
        assert verify(SECRET, TIMESTAMP, BODY, "sha256=é" * 3) is False


class TestSerializePayload:
    """Tests for serialize_payload()."""

    def test_compact_separators(self) -> None:
        assert serialize_payload({"event": "hmac_test", "x": 1}) == BODY

    def test_preserves_key_order(self) -> None:
        assert serialize_payload({"b": 1, "a": 2}) == b'{"b":1,"a":2}'

    def test_non_ascii_not_escaped(self) -> None:
        assert serialize_payload({"subject": "ação"}) == '{"subject":"ação"}'.encode()

    def test_rejects_unserializable(self) -> None:
        with pytest.raises(TypeError):
            serialize_payload({"x": object()})


class TestBuildSignatureHeaders:
    """Tests for build_signature_headers()."""

    def test_default_header_names(self) -> None:
        headers = build_signature_headers(SECRET, TIMESTAMP, BODY)
        assert headers == {
            "X-Signature": sign(SECRET, TIMESTAMP, BODY),
            "X-Timestamp": str(TIMESTAMP),
        }

    def test_custom_header_names(self) -> None:
        headers = build_signature_headers(
            SECRET,
            TIMESTAMP,
            BODY,
            signature_header="X-Hub-Signature",
            timestamp_header="X-Sent-At",
        )
        assert set(headers) == {"X-Hub-Signature", "X-Sent-At"}


class TestParseTimestamp:
    """Tests for parse_timestamp()."""

    def test_valid(self) -> None:
        assert parse_timestamp("1700000000000") == 1_700_000_000_000

    def test_whitespace(self) -> None:
        assert parse_timestamp(" 42 ") == 42

    @pytest.mark.parametrize("value", [None, "", "abc", "-5", "1.5", "1e9", "١٢٣"])
    def test_invalid(self, value: str | None) -> None:
        assert parse_timestamp(value) is None


class TestNowMillis:
    """Tests for now_millis()."""

    def test_uses_clock(self) -> None:
        assert now_millis(lambda: 1_700_000_000.1234) == 1_700_000_000_123


class TestReplayFingerprint:
    """Tests for replay_fingerprint()."""

    def test_hex_digest(self) -> None:
        fingerprint = replay_fingerprint("sha256=abc", TIMESTAMP, BODY)
        assert len(fingerprint) == 64
        assert all(c in "0123456789abcdef" for c in fingerprint)

    def test_signature_key_ignores_body(self) -> None:
        a = replay_fingerprint("sha256=abc", TIMESTAMP, BODY, "signature")
        b = replay_fingerprint("sha256=abc", TIMESTAMP + 1, b"other", "signature")
        assert a == b

    def test_signature_timestamp_key(self) -> None:
        a = replay_fingerprint("sha256=abc", TIMESTAMP, BODY, "signature_timestamp")
        b = replay_fingerprint("sha256=abc", TIMESTAMP + 1, BODY, "signature_timestamp")
        c = replay_fingerprint("sha256=abc", TIMESTAMP, b"other", "signature_timestamp")
        assert a != b
        assert a == c

    def test_full_key(self) -> None:
        a = replay_fingerprint("sha256=abc", TIMESTAMP, BODY, "full")
        b = replay_fingerprint("sha256=abc", TIMESTAMP, b"other", "full")
        assert a != b

    def test_compositions_differ(self) -> None:
        keys = {
            replay_fingerprint("sha256=abc", TIMESTAMP, BODY, key)
            for key in ("signature", "signature_timestamp", "full")
        }
        assert len(keys) == 3

    def test_unknown_key(self) -> None:
        with pytest.raises(ValueError, match="Unknown replay_key"):
            replay_fingerprint("sha256=abc", TIMESTAMP, BODY, "nonce")
