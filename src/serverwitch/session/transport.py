"""Duplex frame transport between the agent and the relay.

The session engine only sees :class:`Frame` objects going in and out of
a :class:`Transport`. :class:`WebSocketTransport` backs it with a
``websockets`` client connection.
"""

from __future__ import annotations

import enum
import logging
from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK, WebSocketException

logger = logging.getLogger(__name__)

DEFAULT_OPEN_TIMEOUT = 10.0


class FrameKind(str, enum.Enum):
    TEXT = "text"
    BINARY = "binary"
    PING = "ping"
    PONG = "pong"
    CLOSE = "close"


class Frame(BaseModel):
    """One message on the duplex channel."""

    model_config = ConfigDict(frozen=True)

    kind: FrameKind
    payload: str | bytes = b""

    @classmethod
    def text(cls, payload: str) -> Frame:
        return cls(kind=FrameKind.TEXT, payload=payload)

    @classmethod
    def ping(cls, payload: bytes = b"") -> Frame:
        return cls(kind=FrameKind.PING, payload=payload)

    @classmethod
    def pong(cls, payload: bytes = b"") -> Frame:
        return cls(kind=FrameKind.PONG, payload=payload)

    def __str__(self) -> str:
        if self.kind is FrameKind.TEXT:
            return str(self.payload)
        return f"<{self.kind.value} {self.payload!r}>"


class Transport(ABC):
    """Abstract duplex channel carrying frames.

    Example usage::

        async with await WebSocketTransport.connect("wss://host/session") as t:
            frame = await t.recv()
            await t.send(Frame.text("{}"))
    """

    @abstractmethod
    async def recv(self) -> Frame | None:
        """Wait for the next inbound frame.

        Returns:
            The frame, or None once the peer has closed the stream.

        Raises:
            TransportError: If the stream fails.
        """
        ...

    @abstractmethod
    async def send(self, frame: Frame) -> None:
        """Write one frame to the outbound sink.

        Raises:
            TransportError: If the sink fails.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the channel. Safe to call more than once."""
        ...

    async def __aenter__(self) -> Transport:
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.close()


class WebSocketTransport(Transport):
    """Transport over a ``websockets`` client connection.

    The library answers pings from the relay on its own, so inbound
    frames are only ever text or binary. Its automatic keepalive is
    disabled; the session schedules its own pings.
    """

    def __init__(self, connection: ClientConnection) -> None:
        self._connection = connection

    @classmethod
    async def connect(
        cls, url: str, open_timeout: float = DEFAULT_OPEN_TIMEOUT
    ) -> WebSocketTransport:
        """Open a connection to ``url``.

        Raises:
            TransportError: If the connection cannot be established.
        """
        try:
            connection = await connect(url, ping_interval=None, open_timeout=open_timeout)
        except (OSError, TimeoutError, WebSocketException) as e:
            raise TransportError(f"Cannot connect to {url}: {e}") from e
        logger.info("Connected to %s", url)
        return cls(connection)

    async def recv(self) -> Frame | None:
        try:
            message = await self._connection.recv()
        except ConnectionClosedOK:
            return None
        except ConnectionClosed as e:
            raise TransportError(f"Connection lost: {e}") from e
        if isinstance(message, str):
            return Frame.text(message)
        return Frame(kind=FrameKind.BINARY, payload=message)

    async def send(self, frame: Frame) -> None:
        try:
            if frame.kind in (FrameKind.TEXT, FrameKind.BINARY):
                await self._connection.send(frame.payload)
            elif frame.kind is FrameKind.PING:
                await self._connection.ping(frame.payload)
            elif frame.kind is FrameKind.PONG:
                await self._connection.pong(frame.payload)
            else:
                await self._connection.close()
        except ConnectionClosed as e:
            raise TransportError(f"Cannot send {frame.kind.value} frame: {e}") from e

    async def close(self) -> None:
        await self._connection.close()
        logger.info("Connection closed")


class TransportError(Exception):
    """Raised when the connection to the relay fails."""
