import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Hashable


class KeyedLocks:
    """
    One asyncio lock per key, created on first use and dropped once no task holds or waits on it.

    These only serialize tasks within one process. Every guarded operation is also backed by a database constraint,
    so running several server processes stays correct (the loser gets an IntegrityError instead of waiting).
    """

    def __init__(self):
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


# Shared by every store instance (stores are created per request)
author_locks = KeyedLocks()
pair_locks = KeyedLocks()
post_locks = KeyedLocks()
