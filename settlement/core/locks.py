"""Per-key asyncio locks used to serialize balance mutations within a process."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager


class KeyedLock:
    """Hands out one ``asyncio.Lock`` per key; unused locks are dropped.

    Different keys never block each other. Row locks in the database remain
    the cross-process guarantee; this only orders work inside one worker.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                self._locks.pop(key, None)

    @asynccontextmanager
    async def hold_many(self, keys: Iterable[str]) -> AsyncIterator[None]:
        # sorted acquisition order so overlapping key sets cannot deadlock
        ordered = sorted(set(keys))
        async with _nested(self, ordered):
            yield

    def is_locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return bool(lock and lock.locked())


@asynccontextmanager
async def _nested(keyed: KeyedLock, keys: list[str]) -> AsyncIterator[None]:
    if not keys:
        yield
        return
    async with keyed.hold(keys[0]):
        async with _nested(keyed, keys[1:]):
            yield


__all__ = ["KeyedLock"]
