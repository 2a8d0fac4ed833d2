"""
Counting admission gate for cooperative tasks.

A ConcurrencyGate admits at most ``limit`` holders at once. Callers beyond
the limit queue in arrival order and are admitted one by one as holders
release. ``reset()`` exists to recover from runs abandoned by a timeout:
it forgets stale holders and admits everyone still queued.
"""

from __future__ import annotations

import asyncio
from collections import deque
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, TypeVar

T = TypeVar("T")


class ConcurrencyGate:
    """Bounded-parallelism gate with FIFO waiters.

    Attributes:
        limit: Maximum concurrent holders (at least 1)
        active: Holders currently admitted
        waiting: Callers queued for admission
    """

    def __init__(self, limit: int):
        self._limit = max(1, int(limit))
        self._active = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def active(self) -> int:
        return self._active

    @property
    def waiting(self) -> int:
        return len(self._waiters)

    async def acquire(self) -> None:
        """Wait until a permit is available and take it."""
        if self._active < self._limit and not self._waiters:
            self._active += 1
            return

        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        try:
            await fut
        except asyncio.CancelledError:
            if fut.done() and not fut.cancelled():
                # The permit was handed over before cancellation landed.
                self.release()
            else:
                self._discard(fut)
            raise

    def release(self) -> None:
        """Return a permit, handing it to the oldest waiter if there is one."""
        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                fut.set_result(None)
                return
        self._active = max(0, self._active - 1)

    def reset(self) -> None:
        """Forget all holders and admit every queued waiter.

        Stale holders are not cancelled; their later ``release()`` calls are
        clamped at zero.
        """
        admitted = 0
        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                fut.set_result(None)
                admitted += 1
        self._active = admitted

    @asynccontextmanager
    async def permit(self) -> AsyncIterator[None]:
        await self.acquire()
        try:
            yield
        finally:
            self.release()

    async def with_permit(self, fn: Callable[..., Awaitable[T]], *args: Any) -> T:
        async with self.permit():
            return await fn(*args)

    def _discard(self, fut: asyncio.Future[None]) -> None:
        try:
            self._waiters.remove(fut)
        except ValueError:
            pass

    def __repr__(self) -> str:
        return f"ConcurrencyGate(limit={self._limit}, active={self._active}, waiting={self.waiting})"
