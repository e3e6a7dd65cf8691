"""Background sweep of expired replay fingerprints.

The memory store already treats expired fingerprints as absent on lookup;
the sweep only bounds memory by deleting them. Each run takes the store's
lock, so it never interleaves with a request's check-and-insert.

Examples:
    Run the sweep for the lifetime of an application::

        task = await start_cleanup_task(store, interval_seconds=60)
        ...
        await stop_cleanup_task(task)
"""

import asyncio

from signed_webhooks.observability.logging import get_logger
from signed_webhooks.observability.metrics import record_cleanup, set_replay_store_size
from signed_webhooks.storage.base import ReplayStore
from signed_webhooks.storage.memory import MemoryReplayStore

logger = get_logger(__name__)


async def run_cleanup(store: ReplayStore) -> int:
    """Sweep once and report metrics.

    Returns:
        The number of fingerprints removed.
    """
    count = await store.cleanup_expired()
    record_cleanup(count)

    if isinstance(store, MemoryReplayStore):
        set_replay_store_size(store.size())

    if count > 0:
        logger.info("cleanup.completed", records_removed=count)
    else:
        logger.debug("cleanup.completed", records_removed=0)

    return count


async def cleanup_loop(
    store: ReplayStore,
    interval_seconds: int = 60,
    stop_event: asyncio.Event | None = None,
) -> None:
    """Sweep the store every ``interval_seconds`` until ``stop_event`` is set.

    A failed sweep is logged and the loop keeps running; fingerprints stay
    logically expired even when a sweep fails.

    Args:
        store: Replay store to sweep
        interval_seconds: Time between sweeps
        stop_event: Event that stops the loop
    """
    if stop_event is None:
        stop_event = asyncio.Event()

    logger.info("cleanup.started", interval_seconds=interval_seconds)

    while not stop_event.is_set():
        try:
            await run_cleanup(store)
        except Exception as e:
            logger.error(
                "cleanup.failed",
                error=str(e),
                error_type=type(e).__name__,
            )

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            continue

    logger.info("cleanup.stopped")


async def start_cleanup_task(
    store: ReplayStore,
    interval_seconds: int = 60,
) -> asyncio.Task[None]:
    """Start the sweep as a background task.

    Returns:
        The running task; pass it to ``stop_cleanup_task`` on shutdown.
    """
    stop_event = asyncio.Event()

    task = asyncio.create_task(
        cleanup_loop(
            store=store,
            interval_seconds=interval_seconds,
            stop_event=stop_event,
        )
    )
    task._stop_event = stop_event  # type: ignore[attr-defined]

    return task


async def stop_cleanup_task(task: asyncio.Task[None]) -> None:
    """Signal the sweep to stop and wait for it, cancelling after 5 seconds."""
    stop_event: asyncio.Event | None = getattr(task, "_stop_event", None)

    if stop_event:
        stop_event.set()

    try:
        await asyncio.wait_for(task, timeout=5.0)
    except asyncio.TimeoutError:
        logger.warning("cleanup.stop_timeout", message="Cleanup task did not stop in time")
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.debug("cleanup.cancelled")
