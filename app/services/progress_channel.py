"""Single-producer, single-consumer event channel for one job.

The producer side (`publish`) never waits: the job keeps running at full speed
whether or not anyone is reading. Once the consumer detaches, further events
are discarded. Exactly one terminal event is accepted; it closes the channel.
"""
from __future__ import annotations

import asyncio
from typing import AsyncIterator

from app.models.events import SSEEvent


class ChannelClosedError(RuntimeError):
    pass


class ProgressChannel:
    def __init__(self, maxsize: int = 64):
        self._queue: asyncio.Queue[SSEEvent] = asyncio.Queue(maxsize=max(maxsize, 1))
        self._closed = False
        self._detached = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def detached(self) -> bool:
        return self._detached

    def publish(self, event: SSEEvent) -> None:
        if self._closed:
            raise ChannelClosedError(f"channel closed, cannot publish {event.event.value}")
        if event.is_terminal:
            self._closed = True

        if self._detached:
            return

        if self._queue.full():
            if not event.is_terminal:
                # Slow reader: a skipped heartbeat is harmless.
                self.dropped += 1
                return
            # The terminal event must always get through.
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait(event)

    def detach(self) -> None:
        """Consumer went away: stop buffering and release queued events."""
        self._detached = True
        while not self._queue.empty():
            self._queue.get_nowait()

    async def __aiter__(self) -> AsyncIterator[SSEEvent]:
        while True:
            event = await self._queue.get()
            yield event
            if event.is_terminal:
                return
