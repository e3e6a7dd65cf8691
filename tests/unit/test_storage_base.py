"""Unit tests for the replay store protocol.

Tests in this module verify that the ReplayStore protocol is correctly
defined and that runtime type checking works as expected.
"""

from signed_webhooks.storage import MemoryReplayStore, RedisReplayStore, ReplayStore


class TestReplayStoreProtocol:
    """Test suite for the ReplayStore protocol definition."""

    def test_has_required_methods(self):
        assert hasattr(ReplayStore, "check_and_insert")
        assert hasattr(ReplayStore, "contains")
        assert hasattr(ReplayStore, "cleanup_expired")

    def test_conforming_class(self):
        """A class implementing all methods should conform to ReplayStore."""

        class ConformingStore:
            async def check_and_insert(self, fingerprint: str, ttl_seconds: int) -> bool:  # noqa: ARG002
                return True

            async def contains(self, fingerprint: str) -> bool:  # noqa: ARG002
                return False

            async def cleanup_expired(self) -> int:
                return 0

        assert isinstance(ConformingStore(), ReplayStore)

    def test_non_conforming_class(self):
        """A class missing check_and_insert should not conform."""

        class PartialStore:
            async def contains(self, fingerprint: str) -> bool:  # noqa: ARG002
                return False

            async def cleanup_expired(self) -> int:
                return 0

        assert not isinstance(PartialStore(), ReplayStore)

    def test_memory_store_conforms(self):
        assert isinstance(MemoryReplayStore(), ReplayStore)

    def test_redis_store_conforms(self):
        assert isinstance(RedisReplayStore(client=object()), ReplayStore)
