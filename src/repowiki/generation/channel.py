"""Single-consumer event channel between a producer task and a stream reader."""

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

EventT = TypeVar("EventT")

_CLOSED = object()


class EventChannel(Generic[EventT]):
    """Append-only queue of events with explicit close and disconnect.

    The producer calls emit() and finally close(). The consumer iterates the
    channel until it is closed. Emitting after close or after the consumer
    disconnected is a silent no-op, so a producer never fails because its
    reader went away.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False
        self._disconnected = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def disconnected(self) -> bool:
        return self._disconnected

    def emit(self, event: EventT) -> bool:
        """Queue an event for the consumer.

        Returns:
            True if the event was queued, False if it was dropped.
        """
        if self._closed or self._disconnected:
            logger.debug(f"Dropping event after channel shutdown: {event!r}")
            return False
        self._queue.put_nowait(event)
        return True

    def close(self) -> None:
        """Signal end of stream. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    def disconnect(self) -> None:
        """Mark the consumer as gone; later emits are dropped."""
        self._disconnected = True

    async def __aiter__(self) -> AsyncIterator[EventT]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item  # type: ignore[misc]
