# discovery/channel.py

import asyncio
from typing import Any

# Marks the end of the stream inside the underlying queue
_CLOSED = object()


class ChannelClosed(Exception):
    """Raised on put() after close(), and on get() once the channel is drained."""


class KeyChannel:
    """
    Inbound stream of identifiers for the dispatch queue.
    Producers write with put(); the queue reads with get() until the
    channel is closed and empty. Unbounded: writes never wait.
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._exhausted = False

    @property
    def closed(self) -> bool:
        return self._closed

    def put_nowait(self, key: Any) -> None:
        if self._closed:
            raise ChannelClosed("put() on a closed channel")
        self._queue.put_nowait(key)

    async def put(self, key: Any) -> None:
        self.put_nowait(key)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    async def get(self) -> Any:
        if self._exhausted:
            raise ChannelClosed("channel closed")
        item = await self._queue.get()
        if item is _CLOSED:
            self._exhausted = True
            raise ChannelClosed("channel closed")
        return item

