"""Closable line channels between the telnet session and its collaborators.

asyncio.Queue has no notion of the other end going away, which the session
manager needs to tell a quiet peer from a dead one.
"""

from __future__ import annotations

import asyncio
from typing import Optional

_CLOSED = object()


class ChannelClosed(RuntimeError):
    """Raised when sending on a channel that has been closed."""


class LineChannel:
    """Unbounded, ordered single-producer/single-consumer queue of lines.

    There is no backpressure: a stalled consumer lets the queue grow.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, line: str) -> None:
        if self._closed:
            raise ChannelClosed(f"{self.name} channel is closed")
        self._queue.put_nowait(line)

    async def recv(self) -> Optional[str]:
        """Return the next line, or None once closed and drained."""

        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the marker in place so later receivers see it too.
            self._queue.put_nowait(_CLOSED)
            return None
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    def __len__(self) -> int:
        return self._queue.qsize() - (1 if self._closed else 0)
