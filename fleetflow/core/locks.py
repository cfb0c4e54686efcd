import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict, Hashable, Iterable

logger = logging.getLogger(__name__)


class KeyedLock:
    """
    In-process registry of asyncio locks, one per entity key (e.g. ("vehicle", 3)).

    Callers lock every key a transition touches; keys are taken in sorted order
    so two transitions sharing keys cannot deadlock. Entries are dropped once no
    task holds or waits on them.
    """

    def __init__(self):
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._waiters: Dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, keys: Iterable[Hashable]):
        ordered = sorted(set(keys), key=repr)
        acquired = []
        try:
            for key in ordered:
                lock = self._locks.setdefault(key, asyncio.Lock())
                self._waiters[key] = self._waiters.get(key, 0) + 1
                try:
                    await lock.acquire()
                except BaseException:
                    self._release_ref(key)
                    raise
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                self._locks[key].release()
                self._release_ref(key)

    def _release_ref(self, key: Hashable) -> None:
        remaining = self._waiters[key] - 1
        if remaining:
            self._waiters[key] = remaining
        else:
            del self._waiters[key]
            del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


# Global lock registry shared by every ledger in this process
ledger_locks = KeyedLock()
