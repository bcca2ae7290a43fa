# src/bucket_sync/channel.py
"""
Bounded channels connecting the pipeline stages.

A `Channel` wraps an `asyncio.Queue` with an explicit end-of-stream. A
producer either closes it normally, once everything has been sent, or
aborts it after a failure. Consumers iterate with `async for`; iteration
ends on a normal close and raises `StreamAborted` on an abort, so a
truncated stream can never be mistaken for a complete one.
"""

import asyncio
from typing import AsyncIterator, Generic, TypeVar, Union

from bucket_sync.exceptions import StreamAborted

T = TypeVar("T")


class _EndOfStream:
    """Marker placed on the queue by `Channel.close`."""

    def __repr__(self) -> str:
        return "<end of stream>"


class _Aborted:
    """Marker placed on the queue by `Channel.abort`."""

    def __init__(self, reason: str) -> None:
        self.reason: str = reason


_END: _EndOfStream = _EndOfStream()


class Channel(Generic[T]):
    """A bounded, closable queue shared by one producer and many consumers."""

    def __init__(self, name: str, maxsize: int) -> None:
        """
        Initialize the channel.

        Args:
            name (str): A label used in log and error messages.
            maxsize (int): Maximum number of buffered items.
        """
        self.name: str = name
        self._queue: asyncio.Queue[Union[T, _EndOfStream, _Aborted]] = (
            asyncio.Queue(maxsize=maxsize)
        )
        self._closed: bool = False

    async def send(self, item: T) -> None:
        """
        Sends an item, waiting while the channel is full.

        Args:
            item (T): The item to send.
        """
        if self._closed:
            raise RuntimeError(f"Channel '{self.name}' is closed.")
        await self._queue.put(item)

    async def close(self) -> None:
        """Signals that no further items will be sent."""
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_END)

    async def abort(self, reason: str) -> None:
        """
        Closes the channel after an upstream failure.

        Args:
            reason (str): Description of the failure, surfaced to consumers.
        """
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_Aborted(reason))

    async def __aiter__(self) -> AsyncIterator[T]:
        """
        Yields items until the channel is closed.

        The end marker is put back after being seen so every consumer of a
        shared channel observes it.

        Raises:
            StreamAborted: If the producer aborted the channel.
        """
        while True:
            item: Union[T, _EndOfStream, _Aborted] = await self._queue.get()
            if isinstance(item, (_EndOfStream, _Aborted)):
                self._queue.put_nowait(item)
                if isinstance(item, _Aborted):
                    raise StreamAborted(
                        f"Upstream of '{self.name}' failed: {item.reason}"
                    )
                return
            yield item
