"""Property-based tests for signing.

Every body/secret/timestamp round-trips through sign() and verify(), and a
single flipped bit in any of the three inputs breaks verification.
"""

from hypothesis import given
from hypothesis import strategies as st

from signed_webhooks.signing import serialize_payload, sign, verify

secret_strategy = st.binary(min_size=1, max_size=64)
timestamp_strategy = st.integers(min_value=0, max_value=10**13)
body_strategy = st.binary(min_size=0, max_size=2048)


def _flip_bit(data: bytes, index: int) -> bytes:
    position = index % (len(data) * 8)
    byte_index, bit = divmod(position, 8)
    flipped = bytearray(data)
    flipped[byte_index] ^= 1 << bit
    return bytes(flipped)


class TestRoundTrip:
    """sign() output always verifies with the same inputs."""

    @given(secret=secret_strategy, timestamp=timestamp_strategy, body=body_strategy)
    def test_sign_then_verify(self, secret: bytes, timestamp: int, body: bytes) -> None:
        assert verify(secret, timestamp, body, sign(secret, timestamp, body))

    @given(
        payload=st.recursive(
            st.none() | st.booleans() | st.integers() | st.text(),
            lambda children: st.lists(children, max_size=4)
            | st.dictionaries(st.text(max_size=8), children, max_size=4),
            max_leaves=20,
        ),
        secret=secret_strategy,
        timestamp=timestamp_strategy,
    )
    def test_serialized_payload_round_trips(
        self, payload: object, secret: bytes, timestamp: int
    ) -> None:
        body = serialize_payload(payload)
        assert verify(secret, timestamp, body, sign(secret, timestamp, body))


class TestTamperDetection:
    """One flipped bit in secret, timestamp or body invalidates the signature."""

    @given(
        secret=secret_strategy,
        timestamp=timestamp_strategy,
        body=st.binary(min_size=1, max_size=512),
        index=st.integers(min_value=0),
    )
    def test_body_bit_flip(self, secret: bytes, timestamp: int, body: bytes, index: int) -> None:
        signature = sign(secret, timestamp, body)
        assert not verify(secret, timestamp, _flip_bit(body, index), signature)

    @given(
        secret=secret_strategy,
        timestamp=timestamp_strategy,
        body=body_strategy,
        index=st.integers(min_value=0),
    )
    def test_secret_bit_flip(self, secret: bytes, timestamp: int, body: bytes, index: int) -> None:
        signature = sign(secret, timestamp, body)
        assert not verify(_flip_bit(secret, index), timestamp, body, signature)

    @given(
        secret=secret_strategy,
        timestamp=timestamp_strategy,
        body=body_strategy,
        bit=st.integers(min_value=0, max_value=43),
    )
    def test_timestamp_bit_flip(self, secret: bytes, timestamp: int, body: bytes, bit: int) -> None:
        signature = sign(secret, timestamp, body)
        assert not verify(secret, timestamp ^ (1 << bit), body, signature)
