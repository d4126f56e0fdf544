"""
Per-Key Async Locks

Serializes coroutines that touch the same key (a user, or a user/problem
pair) while letting different keys run in parallel. Locks are created on
demand and dropped once nobody holds or waits for them, so the map does not
grow with every problem ever reviewed.

Usage:
    locks = KeyedLock()

    async with locks.hold(("user-1", "two-sum")):
        ...
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Hashable


class KeyedLock:
    """Lazily created asyncio.Lock per key with waiter reference counting."""

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._waiters: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]

    def locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
