import asyncio
from contextlib import asynccontextmanager
from typing import Dict


class KeyedLocks:
    """
    One asyncio.Lock per key (simulation id / student id).
    Bookkeeping runs without awaits, so it needs no lock of its own.
    Entries are dropped once nobody holds or waits on them.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str):
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


simulation_locks = KeyedLocks()
student_stats_locks = KeyedLocks()
