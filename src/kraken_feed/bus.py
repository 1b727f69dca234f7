import asyncio

from kraken_feed.errors import BusClosed
from kraken_feed.protocol.models import Update

_CLOSED = object()


class UpdateBus:
    """
    Bounded, ordered hand-off of typed updates from the feed processor to
    its consumers.

    Publishing waits while the bus is full, so a slow consumer slows the
    processing path down instead of losing updates.
    """

    def __init__(self, capacity: int = 1024) -> None:
        """
        Parameters
        ----------
        capacity : int
            Maximum number of undelivered updates.
        """
        if capacity <= 0:
            raise ValueError(f"Invalid capacity; expected >0 but got {capacity}")

        self._capacity = capacity
        self._queue: asyncio.Queue = asyncio.Queue(capacity)
        self._is_closed = False
        self._has_marker = False

    @property
    def capacity(self) -> int:
        return self._capacity

    def qsize(self) -> int:
        """
        Returns
        -------
        int
            Number of queued updates, excluding the close marker.
        """
        size = self._queue.qsize()
        return size - 1 if self._has_marker else size

    def is_closed(self) -> bool:
        return self._is_closed

    async def publish(self, update: Update) -> None:
        """
        Queue an update, waiting for space when the bus is full.

        Raises
        ------
        BusClosed
            If the bus was closed.
        """
        if self._is_closed:
            raise BusClosed("Cannot publish to a closed bus.")
        await self._queue.put(update)

    async def next(self) -> Update:
        """
        Wait for the next update in publish order.

        Raises
        ------
        BusClosed
            Once the bus is closed and every queued update was consumed.
        """
        if self._is_closed and self._queue.empty():
            raise BusClosed("Bus is closed.")
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the marker for any other waiting consumer.
            self._queue.put_nowait(_CLOSED)
            raise BusClosed("Bus is closed.")
        return item

    async def close(self) -> None:
        """
        Stop accepting updates without waiting for consumers. Consumers
        still receive everything queued before the close, then their
        iteration ends.
        """
        if self._is_closed:
            return
        self._is_closed = True
        # A full queue has no waiting consumers; they see the close once
        # they drain it.
        if not self._queue.full():
            self._queue.put_nowait(_CLOSED)
            self._has_marker = True

    def __aiter__(self) -> "UpdateBus":
        return self

    async def __anext__(self) -> Update:
        try:
            return await self.next()
        except BusClosed:
            raise StopAsyncIteration from None
