"""Replay stores for the receiver pipeline.

All stores implement the ReplayStore protocol defined in base.py.

Available Stores:
    - MemoryReplayStore: In-process store with asyncio locking
    - RedisReplayStore: Shared store using Redis SET NX PX (``redis`` extra)
"""

from signed_webhooks.storage.base import ReplayStore
from signed_webhooks.storage.memory import MemoryReplayStore
from signed_webhooks.storage.redis import RedisReplayStore

__all__ = [
    "ReplayStore",
    "MemoryReplayStore",
    "RedisReplayStore",
]
