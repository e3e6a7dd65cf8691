"""Property-based and concurrency stress tests for MemoryReplayStore.

This test suite uses Hypothesis for property-based testing of the
check-and-insert contract under arbitrary interleavings of inserts and time.
"""

import asyncio

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from signed_webhooks.storage.memory import MemoryReplayStore

# Strategies
fingerprint_strategy = st.text(alphabet="0123456789abcdef", min_size=64, max_size=64)
ttl_strategy = st.integers(min_value=1, max_value=86400)


class TestMemoryReplayStoreProperties:
    """Property-based tests for MemoryReplayStore."""

    @pytest.mark.asyncio
    @given(fingerprint=fingerprint_strategy, ttl=ttl_strategy)
    async def test_first_insert_always_wins(self, fingerprint: str, ttl: int) -> None:
        store = MemoryReplayStore()
        assert await store.check_and_insert(fingerprint, ttl) is True
        assert await store.check_and_insert(fingerprint, ttl) is False

    @pytest.mark.asyncio
    @given(
        fingerprints=st.lists(fingerprint_strategy, min_size=1, max_size=30),
        ttl=ttl_strategy,
    )
    async def test_inserts_win_once_per_distinct_fingerprint(
        self, fingerprints: list[str], ttl: int
    ) -> None:
        store = MemoryReplayStore()

        results = [await store.check_and_insert(fp, ttl) for fp in fingerprints]

        assert results.count(True) == len(set(fingerprints))
        assert store.size() == len(set(fingerprints))

    @pytest.mark.asyncio
    @given(
        fingerprint=fingerprint_strategy,
        ttl=ttl_strategy,
        elapsed=st.floats(min_value=0, max_value=200_000, allow_nan=False),
    )
    async def test_liveness_matches_ttl(self, fingerprint: str, ttl: int, elapsed: float) -> None:
        """A fingerprint is a replay exactly while less than ttl has elapsed."""
        now = [1_700_000_000.0]
        store = MemoryReplayStore(clock=lambda: now[0])
        await store.check_and_insert(fingerprint, ttl)

        now[0] += elapsed

        expected_live = now[0] < 1_700_000_000.0 + ttl
        assert await store.contains(fingerprint) is expected_live
        assert await store.check_and_insert(fingerprint, ttl) is not expected_live


class TestMemoryReplayStoreConcurrency:
    """Concurrency stress tests."""

    @pytest.mark.asyncio
    @settings(max_examples=25)
    @given(
        fingerprint=fingerprint_strategy,
        callers=st.integers(min_value=2, max_value=100),
    )
    async def test_concurrent_check_and_insert_single_winner(
        self, fingerprint: str, callers: int
    ) -> None:
        store = MemoryReplayStore()

        results = await asyncio.gather(
            *(store.check_and_insert(fingerprint, 300) for _ in range(callers))
        )

        assert results.count(True) == 1

    @pytest.mark.asyncio
    @settings(max_examples=25)
    @given(fingerprints=st.lists(fingerprint_strategy, min_size=1, max_size=20))
    async def test_concurrent_mixed_fingerprints(self, fingerprints: list[str]) -> None:
        """Every distinct fingerprint has exactly one winner under contention."""
        store = MemoryReplayStore()
        doubled = fingerprints + fingerprints

        results = await asyncio.gather(
            *(store.check_and_insert(fp, 300) for fp in doubled)
        )

        winners = [fp for fp, won in zip(doubled, results, strict=True) if won]
        assert sorted(winners) == sorted(set(fingerprints))
