"""Replay store protocol for the receiver pipeline.

A replay store remembers the fingerprints of accepted requests for a bounded
time. The receiver consults it once per request, after the signature and
freshness checks have passed, through a single atomic ``check_and_insert``.

The pipeline only depends on this protocol, so the in-memory store can be
swapped for a shared backend (Redis) when several receiver instances sit
behind one load balancer.

Examples:
    Implementing a custom replay store::

        class MyReplayStore:
            async def check_and_insert(self, fingerprint: str, ttl_seconds: int) -> bool:
                # Atomically insert if absent; True if this call inserted it
                ...

            async def contains(self, fingerprint: str) -> bool:
                ...

            async def cleanup_expired(self) -> int:
                ...

Atomicity Requirements:
    All ReplayStore implementations MUST guarantee:

    1. **Atomic check-and-insert**: two concurrent calls with the same
       fingerprint must never both return True.

    2. **Expiry handling**: fingerprints past their expiry are treated as
       absent by ``check_and_insert()`` and ``contains()``. Expiry checks must
       not interleave with another caller's check-and-insert for the same
       fingerprint.

    3. **Insert on acceptance only**: the store never inserts on its own;
       a fingerprint exists only because ``check_and_insert()`` returned True.

Error Handling:
    Backend failures must be raised as ``StorageError``. The pipeline fails
    closed on them.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class ReplayStore(Protocol):
    """Protocol defining the interface for replay-detection stores."""

    async def check_and_insert(self, fingerprint: str, ttl_seconds: int) -> bool:
        """Atomically record a fingerprint unless it is already live.

        Args:
            fingerprint: Replay fingerprint of an otherwise valid request.
            ttl_seconds: How long the fingerprint stays live.

        Returns:
            True if the fingerprint was absent (or expired) and is now
            recorded; False if it was already live, i.e. the request is a
            replay.

        Examples:
            >>> await store.check_and_insert("a" * 64, 300)
            True
            >>> await store.check_and_insert("a" * 64, 300)
            False
        """
        ...

    async def contains(self, fingerprint: str) -> bool:
        """Return True if the fingerprint is live."""
        ...

    async def cleanup_expired(self) -> int:
        """Remove expired fingerprints.

        Returns:
            The number of fingerprints removed. Backends with native expiry
            may always return 0.
        """
        ...
