"""In-process broadcast channel with per-subscriber queues."""
from __future__ import annotations

import asyncio
import logging
from types import TracebackType
from typing import Generic, Self, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSED = object()


class SubscriptionClosed(Exception):
    pass


class Subscription(Generic[T]):
    """One consumer's view of an EventStream.

    Receives every event published after subscribe(). A full queue drops the
    new event for this subscriber only; ``dropped`` counts how many.
    """

    def __init__(self, stream: EventStream[T], max_queue_size: int) -> None:
        self._stream = stream
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=max_queue_size)
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, event: T) -> bool:
        if self._closed:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            return False
        return True

    async def get(self) -> T:
        item = await self._queue.get()
        return self._unwrap(item)

    def get_nowait(self) -> T:
        """Raises asyncio.QueueEmpty when nothing is buffered."""
        return self._unwrap(self._queue.get_nowait())

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._stream.unsubscribe(self)
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    def _unwrap(self, item: object) -> T:
        if item is _CLOSED:
            # leave the marker for any other waiter
            self._queue.put_nowait(_CLOSED)
            raise SubscriptionClosed
        return item  # type: ignore[return-value]

    def __aiter__(self) -> Self:
        return self

    async def __anext__(self) -> T:
        try:
            return await self.get()
        except SubscriptionClosed:
            raise StopAsyncIteration from None

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class EventStream(Generic[T]):
    """Multi-subscriber broadcast. publish() never blocks and never replays."""

    def __init__(self, name: str = "events", default_queue_size: int = 256) -> None:
        self.name = name
        self._default_queue_size = default_queue_size
        self._subscribers: list[Subscription[T]] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, max_queue_size: int | None = None) -> Subscription[T]:
        """Register a consumer. ``max_queue_size=0`` means unbounded."""
        size = self._default_queue_size if max_queue_size is None else max_queue_size
        sub: Subscription[T] = Subscription(self, size)
        self._subscribers.append(sub)
        logger.debug("%s: subscriber added (total=%d)", self.name, len(self._subscribers))
        return sub

    def unsubscribe(self, sub: Subscription[T]) -> None:
        if sub in self._subscribers:
            self._subscribers.remove(sub)
            logger.debug("%s: subscriber removed (total=%d)", self.name, len(self._subscribers))

    def publish(self, event: T) -> int:
        """Deliver to every subscriber; return how many accepted the event."""
        delivered = 0
        for sub in list(self._subscribers):
            if sub.offer(event):
                delivered += 1
            else:
                logger.debug("%s: dropped %s for a slow subscriber", self.name, type(event).__name__)
        return delivered

    def close(self) -> None:
        for sub in list(self._subscribers):
            sub.close()
