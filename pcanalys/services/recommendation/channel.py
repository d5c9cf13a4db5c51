"""
Chunk hand-off between the generation producer and the response writer.

At most `capacity` chunks wait in the channel; send() returns only once the
consumer has taken the chunk or closed the channel. The consumer owns close(),
the producer owns finish().
"""

import asyncio
from typing import Optional

from pcanalys.config.constants import CHANNEL_CAPACITY

_EOF = object()


class ChunkChannel:

    def __init__(self, capacity: int = CHANNEL_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._queue: asyncio.Queue = asyncio.Queue()
        self._slots = asyncio.Semaphore(capacity)
        self._closed = asyncio.Event()
        self._finished = False

    @property
    def closed(self) -> bool:
        """True once the consumer has gone away."""
        return self._closed.is_set()

    @property
    def finished(self) -> bool:
        return self._finished

    async def send(self, chunk: str) -> bool:
        """
        Queue a chunk for the consumer, waiting for a free slot.

        Returns False when the consumer closed the channel, in which case the
        chunk was not delivered and the producer should stop.
        """
        if self.closed or self._finished:
            return False
        if not await self._until_closed(self._slots.acquire()):
            return False
        self._queue.put_nowait(chunk)
        return not self.closed

    def finish(self):
        """Mark end of stream. Never blocks; safe to call more than once."""
        if not self._finished:
            self._finished = True
            self._queue.put_nowait(_EOF)

    def close(self):
        self._closed.set()

    async def receive(self) -> Optional[str]:
        """Next chunk, or None once the producer has finished."""
        item = await self._queue.get()
        if item is _EOF:
            # Leave the marker for any further receive() calls
            self._queue.put_nowait(_EOF)
            return None
        self._slots.release()
        return item

    async def _until_closed(self, awaitable) -> bool:
        """Await `awaitable` unless the channel closes first."""
        waiter = asyncio.ensure_future(awaitable)
        closer = asyncio.ensure_future(self._closed.wait())
        try:
            await asyncio.wait({waiter, closer}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            closer.cancel()
            if not waiter.done():
                waiter.cancel()
        return waiter.done() and not waiter.cancelled()
