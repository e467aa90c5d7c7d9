"""Message passing between the session engine and the terminal view.

The two tasks share no mutable state. Lifecycle notifications travel
through a bounded :class:`Mailbox`; confirmation decisions come back
through a single-use :class:`Acknowledgement`. Both can be closed, and
a reader of a closed channel sees that as a distinct outcome rather than
waiting forever.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAILBOX_SIZE = 100

_CLOSED = object()


class ChannelError(Exception):
    """Base class for mailbox and acknowledgement failures."""


class MailboxFullError(ChannelError):
    """Raised when a message is posted to a mailbox at capacity."""


class MailboxClosedError(ChannelError):
    """Raised when a message is posted to a closed mailbox."""


class AcknowledgementClosedError(ChannelError):
    """Raised when an acknowledgement is answered twice or after closing."""


class Mailbox(Generic[T]):
    """Bounded, closeable, single-consumer message queue.

    Senders never block: :meth:`send_nowait` fails immediately when the
    mailbox is full or closed. The receiver drains whatever was queued
    before the close, then sees end-of-stream.

    Usage::

        mailbox = Mailbox(maxsize=100)
        mailbox.send_nowait(message)
        async for message in mailbox:
            ...
    """

    def __init__(self, maxsize: int = DEFAULT_MAILBOX_SIZE) -> None:
        if maxsize <= 0:
            raise ValueError("Mailbox capacity must be positive")
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return self._queue.qsize()

    def send_nowait(self, message: T) -> None:
        """Post a message without waiting.

        Raises:
            MailboxClosedError: If the mailbox was closed.
            MailboxFullError: If the mailbox is at capacity.
        """
        if self._closed:
            raise MailboxClosedError("Mailbox is closed")
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            raise MailboxFullError(
                f"Mailbox is full ({self._queue.maxsize} messages)"
            ) from None

    async def receive(self) -> T | None:
        """Wait for the next message. Returns None once closed and drained."""
        if self._closed and self._queue.empty():
            return None
        item = await self._queue.get()
        if item is _CLOSED:
            return None
        return item  # type: ignore[return-value]

    def drain(self) -> list[T]:
        """Remove and return every queued message without waiting."""
        messages: list[T] = []
        while True:
            try:
                item = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return messages
            if item is not _CLOSED:
                messages.append(item)  # type: ignore[arg-type]

    def close(self) -> None:
        """Refuse further messages and wake a waiting receiver."""
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            # The receiver finds the queue closed once it drains it.
            pass
        logger.debug("Mailbox closed")

    def __aiter__(self) -> AsyncIterator[T]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[T]:
        while True:
            message = await self.receive()
            if message is None:
                return
            yield message


class Acknowledgement:
    """Single-use boolean reply channel.

    Exactly one of :meth:`send` or :meth:`close` takes effect. The waiter
    gets the boolean, or None if the channel was closed without a value.
    """

    def __init__(self) -> None:
        self._value: bool | None = None
        self._done = asyncio.Event()

    @property
    def closed(self) -> bool:
        """Whether the channel was answered or closed."""
        return self._done.is_set()

    def send(self, value: bool) -> None:
        """Answer the acknowledgement.

        Raises:
            AcknowledgementClosedError: If it was already answered or closed.
        """
        if self._done.is_set():
            raise AcknowledgementClosedError("Acknowledgement already settled")
        self._value = value
        self._done.set()

    def close(self) -> None:
        """Settle without a value. No-op if already settled."""
        if not self._done.is_set():
            self._done.set()

    async def wait(self) -> bool | None:
        await self._done.wait()
        return self._value
