"""Unit tests for the replay-store cleanup sweep."""

import asyncio

import pytest
from prometheus_client import REGISTRY

from signed_webhooks.core.cleanup import (
    cleanup_loop,
    run_cleanup,
    start_cleanup_task,
    stop_cleanup_task,
)
from signed_webhooks.storage.memory import MemoryReplayStore


class ExplodingStore:
    def __init__(self):
        self.calls = 0

    async def check_and_insert(self, fingerprint, ttl_seconds):
        return True

    async def contains(self, fingerprint):
        return False

    async def cleanup_expired(self):
        self.calls += 1
        raise RuntimeError("sweep failed")


@pytest.mark.asyncio
async def test_run_cleanup_removes_expired(clock):
    store = MemoryReplayStore(clock=clock)
    await store.check_and_insert("a" * 64, 10)
    await store.check_and_insert("b" * 64, 600)
    clock.advance(60)

    removed = await run_cleanup(store)

    assert removed == 1
    assert REGISTRY.get_sample_value("webhook_replay_store_size") == 1


@pytest.mark.asyncio
async def test_run_cleanup_counts_operations(clock):
    store = MemoryReplayStore(clock=clock)
    before = REGISTRY.get_sample_value("webhook_replay_cleanup_operations_total") or 0

    await run_cleanup(store)

    assert REGISTRY.get_sample_value("webhook_replay_cleanup_operations_total") == before + 1


@pytest.mark.asyncio
async def test_loop_stops_on_event(clock):
    store = MemoryReplayStore(clock=clock)
    stop_event = asyncio.Event()
    stop_event.set()

    # Runs one sweep, then sees the event and exits
    await asyncio.wait_for(cleanup_loop(store, interval_seconds=60, stop_event=stop_event), 1.0)


@pytest.mark.asyncio
async def test_loop_survives_failed_sweep():
    store = ExplodingStore()
    stop_event = asyncio.Event()

    task = asyncio.create_task(cleanup_loop(store, interval_seconds=1, stop_event=stop_event))
    await asyncio.sleep(0.05)
    stop_event.set()
    await asyncio.wait_for(task, 2.0)

    assert store.calls >= 1
    assert task.exception() is None


@pytest.mark.asyncio
async def test_start_and_stop_task(clock):
    store = MemoryReplayStore(clock=clock)
    await store.check_and_insert("a" * 64, 10)
    clock.advance(11)

    task = await start_cleanup_task(store, interval_seconds=60)
    await asyncio.sleep(0.05)
    await stop_cleanup_task(task)

    assert task.done()
    assert store.size() == 0
