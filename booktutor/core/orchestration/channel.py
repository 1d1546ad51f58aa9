# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bounded event channel between a running turn and its listener.

The producer (the tutor agent) awaits ``send()`` for each event and calls
``finish()`` once, optionally with the error that ended the turn. The
consumer iterates the channel; an error passed to ``finish()`` is raised
to the consumer after every event sent before it. A consumer that stops
listening calls ``close()``, which makes the producer's next ``send()``
raise ChannelClosedError.
"""

import asyncio
import logging
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_END = object()


class ChannelClosedError(Exception):
    """Raised when sending to a channel whose listener has gone away."""

    def __init__(self, message: str = "Event channel is closed") -> None:
        super().__init__(message)
        self.message = message


class EventChannel(Generic[T]):
    """Bounded single-producer, single-consumer async channel.

    Example:
        >>> channel = EventChannel(maxsize=100)
        >>> await channel.send(ContentEvent(text="Hi"))
        >>> await channel.finish()
        >>> [event async for event in channel]
    """

    def __init__(self, maxsize: int = 100) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._finished = False
        self._error: BaseException | None = None

    @property
    def closed(self) -> bool:
        """Whether the consumer has stopped listening."""
        return self._closed

    async def send(self, event: T) -> None:
        """Send one event, waiting while the channel is full.

        Raises:
            ChannelClosedError: If the consumer closed the channel.
        """
        if self._closed:
            raise ChannelClosedError()
        if self._finished:
            raise ChannelClosedError("Event channel is already finished")
        await self._queue.put(event)

    async def finish(self, error: BaseException | None = None) -> None:
        """Mark the end of the event stream.

        Args:
            error: Error to raise to the consumer after pending events.
        """
        if self._finished:
            return
        self._finished = True
        self._error = error
        if self._closed:
            if error is not None:
                logger.debug("Turn failed after listener left: %r", error)
            return
        await self._queue.put(_END)

    def close(self) -> None:
        """Stop listening and discard pending events."""
        self._closed = True
        while not self._queue.empty():
            self._queue.get_nowait()

    def __aiter__(self) -> "EventChannel[T]":
        return self

    async def __anext__(self) -> T:
        if self._closed:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END:
            self._closed = True
            if self._error is not None:
                raise self._error
            raise StopAsyncIteration
        return item  # type: ignore[return-value]
