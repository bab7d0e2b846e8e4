"""Per-resource locks and bounded collaborator calls"""
import asyncio
from contextlib import asynccontextmanager, AsyncExitStack
from typing import Awaitable, Dict, Hashable, TypeVar

from domain.errors import CollaboratorTimeoutError

T = TypeVar("T")


class LockRegistry:
    """Hands out one asyncio.Lock per resource key.

    Keys look like ``("location", "room-101")`` or ``("reservation", uuid)``.
    Callers take entity locks before location locks, and several location
    locks in sorted order, so two operations never wait on each other in
    opposite orders.
    """

    def __init__(self):
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        # Holders and waiters per key; a lock is dropped once nobody uses it
        self._users: Dict[Hashable, int] = {}

    def __contains__(self, key: Hashable) -> bool:
        return key in self._locks

    def lock_for(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def hold(self, *keys: Hashable):
        """Acquire the locks for ``keys`` in the given order, skipping repeats"""
        seen = []
        for key in keys:
            if key not in seen:
                seen.append(key)
        for key in seen:
            self._users[key] = self._users.get(key, 0) + 1
        try:
            async with AsyncExitStack() as stack:
                for key in seen:
                    await stack.enter_async_context(self.lock_for(key))
                yield
        finally:
            for key in seen:
                self._users[key] -= 1
                if not self._users[key]:
                    del self._users[key]
                    self._locks.pop(key, None)


def location_keys(*location_ids: str):
    """Lock keys for the given locations, in acquisition order"""
    return [("location", location_id) for location_id in sorted(set(location_ids))]


async def bounded(awaitable: Awaitable[T], operation: str, timeout: float) -> T:
    """Await a collaborator call, failing the operation if it takes too long"""
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError:
        raise CollaboratorTimeoutError(operation, timeout)
