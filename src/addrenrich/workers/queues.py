"""Bounded queue that can be closed without discarding queued items."""

import asyncio
from collections import deque
from typing import Generic, TypeVar

from addrenrich.exceptions import QueueClosed

T = TypeVar("T")


class ClosableQueue(Generic[T]):
    """
    Bounded async FIFO with close semantics.

    - ``put`` waits while the queue is full and raises ``QueueClosed`` once
      closed, including for producers already waiting.
    - ``get`` waits while the queue is empty and keeps handing out queued
      items after close; it raises ``QueueClosed`` only when closed and empty.
    - ``async for item in queue`` stops at that point.
    """

    def __init__(self, maxsize: int = 0):
        self.maxsize = maxsize
        self._items: deque[T] = deque()
        self._closed = False
        self._cond = asyncio.Condition()

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return len(self._items)

    def empty(self) -> bool:
        return not self._items

    def full(self) -> bool:
        return 0 < self.maxsize <= len(self._items)

    async def put(self, item: T) -> None:
        """Enqueue an item, waiting for room."""
        async with self._cond:
            await self._cond.wait_for(lambda: self._closed or not self.full())
            if self._closed:
                raise QueueClosed("put on closed queue")
            self._items.append(item)
            self._cond.notify_all()

    async def get(self) -> T:
        """Dequeue an item, waiting for one to arrive."""
        async with self._cond:
            await self._cond.wait_for(lambda: self._closed or self._items)
            if not self._items:
                raise QueueClosed("queue closed and drained")
            item = self._items.popleft()
            self._cond.notify_all()
            return item

    async def close(self) -> None:
        """Stop accepting items and wake every waiter. Safe to call twice."""
        async with self._cond:
            self._closed = True
            self._cond.notify_all()

    def drain_nowait(self) -> list[T]:
        """Remove and return everything still queued. Meant for closed queues."""
        items = list(self._items)
        self._items.clear()
        return items

    def __aiter__(self) -> "ClosableQueue[T]":
        return self

    async def __anext__(self) -> T:
        try:
            return await self.get()
        except QueueClosed:
            raise StopAsyncIteration from None
