"""
Pytest configuration and shared fixtures for signed_webhooks tests.
"""

from collections.abc import Callable

import pytest

from signed_webhooks.signing import sign

TEST_SECRET = "testsecret"
TEST_TOKEN = "testtoken"
FIXED_NOW = 1_700_000_000.0


class FakeClock:
    """Settable time source returning epoch seconds."""

    def __init__(self, now: float = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    @property
    def millis(self) -> int:
        return int(self.now * 1000)


@pytest.fixture
def clock() -> FakeClock:
    """Provide a fake clock frozen at FIXED_NOW."""
    return FakeClock()


@pytest.fixture
def sample_payload() -> dict:
    """Provide the ticket payload the bot sends on close."""
    return {
        "event": "ticket_closed",
        "ticket": {"id": 1003, "guild_id": "987654321", "subject": "Teste final"},
        "messages": [{"content": "Teste final payload", "author": "User#0001"}],
    }


@pytest.fixture
def signed_headers() -> Callable[..., dict[str, str]]:
    """Build request headers for a raw body, signed with the given secret."""

    def _build(
        body: bytes,
        timestamp: int,
        secret: str = TEST_SECRET,
        token: str | None = TEST_TOKEN,
    ) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "X-Signature": sign(secret, timestamp, body),
            "X-Timestamp": str(timestamp),
        }
        if token is not None:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    return _build
