"""In-memory replay store with asyncio concurrency control.

This module provides a process-local implementation of the ReplayStore
protocol. It is suitable for a single receiver process; use
``RedisReplayStore`` when several receivers must share replay state.

Concurrency:
    - One asyncio.Lock guards the fingerprint map
    - Lookup, lazy expiry and insert happen under the same lock acquisition,
      so no other request can interleave between them
    - The lock is never held across an await of anything but itself

Expiry:
    - Expired entries are treated as absent on lookup (lazy expiry)
    - ``cleanup_expired()`` sweeps them out; run it periodically through
      ``signed_webhooks.core.cleanup``

Examples:
    Basic usage::

        store = MemoryReplayStore()

        if not await store.check_and_insert(fingerprint, ttl_seconds=300):
            raise ReplayError("Replay detected", fingerprint=fingerprint)

    Deterministic tests with an injected clock::

        now = [1_700_000_000.0]
        store = MemoryReplayStore(clock=lambda: now[0])
        await store.check_and_insert("a" * 64, 300)
        now[0] += 301
        assert not await store.contains("a" * 64)
"""

import asyncio
import time
from collections.abc import Callable

from signed_webhooks.models import ReplayRecord
from signed_webhooks.storage.base import ReplayStore


class MemoryReplayStore(ReplayStore):
    """In-memory replay store.

    Attributes:
        _records: Mapping of fingerprint to ReplayRecord.
        _lock: Lock making check-and-insert atomic.
        _clock: Callable returning epoch seconds.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        """Initialize an empty store.

        Args:
            clock: Time source returning epoch seconds.
        """
        self._records: dict[str, ReplayRecord] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    async def check_and_insert(self, fingerprint: str, ttl_seconds: int) -> bool:
        """Atomically record a fingerprint unless it is already live.

        Args:
            fingerprint: Replay fingerprint.
            ttl_seconds: Lifetime of the fingerprint in seconds.

        Returns:
            True if recorded now, False if already live.
        """
        async with self._lock:
            now = self._clock()
            existing = self._records.get(fingerprint)
            if existing is not None and not existing.is_expired(now):
                return False

            self._records[fingerprint] = ReplayRecord(
                fingerprint=fingerprint,
                created_at=now,
                expires_at=now + ttl_seconds,
            )
            return True

    async def contains(self, fingerprint: str) -> bool:
        async with self._lock:
            record = self._records.get(fingerprint)
            return record is not None and not record.is_expired(self._clock())

    async def cleanup_expired(self) -> int:
        """Remove all expired fingerprints.

        Returns:
            The number of fingerprints removed.
        """
        async with self._lock:
            now = self._clock()
            expired = [fp for fp, record in self._records.items() if record.is_expired(now)]
            for fingerprint in expired:
                del self._records[fingerprint]
            return len(expired)

    def size(self) -> int:
        """Number of stored fingerprints, expired ones not yet swept included."""
        return len(self._records)
