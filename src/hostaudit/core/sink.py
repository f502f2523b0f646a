"""Event sinks: the channel between the scan engine and its consumer.

The engine only ever calls ``send``; it never closes a sink. Closing is the
consumer's business, and a ``send`` on a closed sink raises SinkClosedError.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from typing import Protocol

from hostaudit.core.errors import SinkClosedError
from hostaudit.core.events import ScanEvent

logger = logging.getLogger(__name__)


class EventSink(Protocol):
    """Ordered, non-blocking event channel."""

    def send(self, event: ScanEvent) -> None:
        """Publish an event. Raises SinkClosedError if the consumer is gone."""
        ...


class QueueEventSink:
    """Unbounded asyncio queue; the consumer iterates it with ``async for``.

    Iteration ends once the sink is closed and the queue is drained.
    """

    _CLOSED = object()

    def __init__(self) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event: ScanEvent) -> None:
        if self._closed:
            raise SinkClosedError(f"Channel send error: sink closed ({event.event})")
        self._queue.put_nowait(event)

    def close(self) -> None:
        """Stop accepting events; pending events are still delivered."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(self._CLOSED)

    async def __aiter__(self) -> AsyncIterator[ScanEvent]:
        while True:
            item = await self._queue.get()
            if item is self._CLOSED:
                return
            yield item  # type: ignore[misc]


class CallbackEventSink:
    """Forwards every event to a callable.

    Any exception raised by the callback means the consumer is unusable and is
    reported as SinkClosedError.
    """

    def __init__(self, callback: Callable[[ScanEvent], None]) -> None:
        self._callback = callback

    def send(self, event: ScanEvent) -> None:
        try:
            self._callback(event)
        except SinkClosedError:
            raise
        except Exception as e:
            logger.debug(f"Event callback failed on {event.event}: {e}")
            raise SinkClosedError(f"Channel send error: {e}") from e


class CollectingEventSink:
    """Keeps every event in memory; handy for embedding and tests."""

    def __init__(self) -> None:
        self.events: list[ScanEvent] = []

    def send(self, event: ScanEvent) -> None:
        self.events.append(event)

    def of_type(self, name: str) -> list[ScanEvent]:
        """Events whose discriminant equals ``name``."""
        return [e for e in self.events if e.event == name]
