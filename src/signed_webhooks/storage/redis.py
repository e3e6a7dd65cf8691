"""Redis-backed replay store for multi-instance receivers.

Check-and-insert maps onto a single ``SET key 1 NX PX <ttl>`` command, which
Redis executes atomically, so every receiver instance sharing the Redis
database sees the same replay state. Expiry is native; ``cleanup_expired()``
has nothing to do.

Key pattern: ``<prefix>:<fingerprint>`` (default prefix ``webhook:seen``).

Examples:
    Connecting by URL::

        store = RedisReplayStore.from_url("redis://localhost:6379/0")

    Reusing an existing client::

        import redis.asyncio as redis

        client = redis.Redis(host="cache", port=6379)
        store = RedisReplayStore(client, key_prefix="receiver-a:seen")
"""

from typing import Any

from signed_webhooks.exceptions import StorageError
from signed_webhooks.storage.base import ReplayStore

DEFAULT_KEY_PREFIX = "webhook:seen"


class RedisReplayStore(ReplayStore):
    """Replay store backed by Redis ``SET NX PX``.

    Attributes:
        client: A ``redis.asyncio.Redis`` (or compatible) client.
        key_prefix: Namespace for fingerprint keys.
    """

    def __init__(self, client: Any, key_prefix: str = DEFAULT_KEY_PREFIX) -> None:
        self.client = client
        self.key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, key_prefix: str = DEFAULT_KEY_PREFIX) -> "RedisReplayStore":
        """Create a store with a new client for ``url``.

        Requires the ``redis`` extra.
        """
        import redis.asyncio as redis_asyncio

        return cls(redis_asyncio.from_url(url), key_prefix=key_prefix)

    def _key(self, fingerprint: str) -> str:
        return f"{self.key_prefix}:{fingerprint}"

    async def check_and_insert(self, fingerprint: str, ttl_seconds: int) -> bool:
        """Atomically record a fingerprint unless it is already live.

        Raises:
            StorageError: If the Redis command fails.
        """
        try:
            was_set = await self.client.set(
                self._key(fingerprint),
                "1",
                nx=True,
                px=ttl_seconds * 1000,
            )
        except Exception as e:
            raise StorageError(f"Replay check failed for {fingerprint[:12]}: {e}", cause=e) from e

        return bool(was_set)

    async def contains(self, fingerprint: str) -> bool:
        try:
            return bool(await self.client.exists(self._key(fingerprint)))
        except Exception as e:
            raise StorageError(f"Replay lookup failed for {fingerprint[:12]}: {e}", cause=e) from e

    async def cleanup_expired(self) -> int:
        return 0

    async def close(self) -> None:
        """Close the underlying client connection pool."""
        await self.client.aclose()
