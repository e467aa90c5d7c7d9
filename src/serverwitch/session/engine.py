"""Session protocol engine.

Handles one session on the relay: reads the session id handshake, then
concurrently answers requests, forwards keepalive pings and posts
lifecycle notifications to the view.

Each request goes through the confirmation handshake, is executed if
approved, and is answered with a :class:`Response` carrying the relay's
``request_id``. Responses are written in completion order.
"""

from __future__ import annotations

import asyncio
import logging
from uuid import UUID, uuid4

from pydantic import ValidationError

from serverwitch.domain.channels import Acknowledgement, ChannelError, Mailbox
from serverwitch.domain.models import (
    Action,
    ActionMessage,
    AddAction,
    ConfirmAction,
    ExecutionError,
    Handshake,
    Request,
    Response,
    StopAction,
)
from serverwitch.runner.base import ActionExecutionError, ActionRunner
from serverwitch.runner.local import LocalActionRunner
from serverwitch.session.transport import (
    DEFAULT_OPEN_TIMEOUT,
    Frame,
    FrameKind,
    Transport,
    TransportError,
    WebSocketTransport,
)

logger = logging.getLogger(__name__)

KEEPALIVE_PAYLOAD = b"keepalive"
KEEPALIVE_INTERVAL = 20.0
MAX_CONCURRENCY = 100


class SessionError(Exception):
    """Base class for protocol errors on the relay session."""


class NoSessionIdError(SessionError):
    """The relay did not open the session with a session id."""

    def __init__(self, message: str = "Failed to obtain a session ID") -> None:
        super().__init__(message)


class SessionIdParseError(SessionError):
    """The handshake frame could not be parsed."""


class UnsupportedMessageError(SessionError):
    """The relay sent a frame kind the agent does not handle."""


# ---------------------------------------------------------------------------
# Request handling
# ---------------------------------------------------------------------------


async def get_confirmation(
    action: Action,
    no_confirm: bool,
    mailbox: Mailbox[ActionMessage],
) -> UUID | None:
    """Announce ``action`` to the view and wait for the operator's decision.

    Returns:
        The identifier assigned to the action if it may run, None if it
        was refused or could not be announced.
    """
    action_id = uuid4()

    if no_confirm:
        try:
            mailbox.send_nowait(AddAction(action_id=action_id, action=action))
        except ChannelError as e:
            logger.error("Error sending message: %s", e)
            return None
        return action_id

    ack = Acknowledgement()
    try:
        mailbox.send_nowait(ConfirmAction(action_id=action_id, action=action, ack=ack))
    except ChannelError as e:
        logger.error("Error sending message: %s", e)
        return None

    confirmed = await ack.wait()
    if confirmed is None:
        logger.warning("Confirmation for %s closed without an answer", action_id)
        return None
    return action_id if confirmed else None


async def handle_request(
    request: Request,
    no_confirm: bool,
    mailbox: Mailbox[ActionMessage],
    runner: ActionRunner,
) -> Response:
    """Confirm, execute and answer a single request."""
    action_id = await get_confirmation(request.data, no_confirm, mailbox)
    if action_id is None:
        logger.info("Request %s refused", request.request_id)
        return Response.refused(request.request_id)

    try:
        result = await runner.execute(request.data)
        error = False
    except ActionExecutionError as e:
        logger.warning("Request %s failed: %s", request.request_id, e)
        result = ExecutionError(message=str(e))
        error = True
    except Exception as e:
        # The relay is still owed an answer for this request_id
        logger.exception("Unexpected error handling request %s", request.request_id)
        result = ExecutionError(message=f"Unexpected error: {e}")
        error = True
    finally:
        try:
            mailbox.send_nowait(StopAction(action_id=action_id))
        except ChannelError as e:
            logger.error("Failed to send done event: %s", e)

    return Response(data=result, error=error, request_id=request.request_id)


async def handle_frame(
    frame: Frame,
    no_confirm: bool,
    mailbox: Mailbox[ActionMessage],
    runner: ActionRunner,
) -> Frame | None:
    """Produce the reply to an inbound frame, if any.

    Raises:
        ValidationError: If a text frame is not a valid request.
        UnsupportedMessageError: For frame kinds other than text and control.
    """
    if frame.kind is FrameKind.TEXT:
        request = Request.model_validate_json(frame.payload)
        response = await handle_request(request, no_confirm, mailbox, runner)
        return Frame.text(response.to_json())
    if frame.kind is FrameKind.PING:
        return Frame.pong(frame.payload)
    if frame.kind in (FrameKind.PONG, FrameKind.CLOSE):
        return None
    raise UnsupportedMessageError(
        f"The message type sent by the server is unsupported: {frame.kind.value}"
    )


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class Session:
    """A session on the relay, identified by ``session_id``.

    Usage::

        session = await Session.connect("wss://serverwitch.dev/session")
        await session.process_messages(no_confirm=False, mailbox=mailbox)
    """

    def __init__(
        self,
        session_id: str,
        transport: Transport,
        runner: ActionRunner | None = None,
        keepalive_interval: float = KEEPALIVE_INTERVAL,
        keepalive_payload: bytes = KEEPALIVE_PAYLOAD,
        max_concurrency: int = MAX_CONCURRENCY,
    ) -> None:
        self.session_id = session_id
        self._transport = transport
        self._runner = runner or LocalActionRunner()
        self._keepalive_interval = keepalive_interval
        self._keepalive_payload = keepalive_payload
        self._max_concurrency = max_concurrency

    @property
    def transport(self) -> Transport:
        return self._transport

    @classmethod
    async def connect(
        cls,
        url: str,
        open_timeout: float = DEFAULT_OPEN_TIMEOUT,
        **kwargs: object,
    ) -> Session:
        """Connect to the relay at ``url`` and obtain a session id.

        Raises:
            TransportError: If the connection cannot be established.
            SessionError: If the handshake fails.
        """
        transport = await WebSocketTransport.connect(url, open_timeout=open_timeout)
        try:
            return await cls.open(transport, **kwargs)
        except (SessionError, TransportError):
            await transport.close()
            raise

    @classmethod
    async def open(cls, transport: Transport, **kwargs: object) -> Session:
        """Read the handshake from an already connected transport."""
        frame = await transport.recv()
        if frame is None or frame.kind is not FrameKind.TEXT:
            raise NoSessionIdError()
        try:
            handshake = Handshake.model_validate_json(frame.payload)
        except ValidationError as e:
            raise SessionIdParseError(f"Failed to parse the session ID: {e}") from e
        logger.info("Session id: %s", handshake.session_id)
        return cls(handshake.session_id, transport, **kwargs)  # type: ignore[arg-type]

    async def process_messages(
        self, no_confirm: bool, mailbox: Mailbox[ActionMessage]
    ) -> None:
        """Serve requests until the stream ends or the sink fails."""
        outbound: asyncio.Queue[Frame] = asyncio.Queue()
        semaphore = asyncio.Semaphore(self._max_concurrency)
        in_flight: set[asyncio.Task[None]] = set()

        tasks = [
            asyncio.create_task(
                self._read_frames(outbound, semaphore, in_flight, no_confirm, mailbox),
                name="session-reader",
            ),
            asyncio.create_task(self._send_keepalives(outbound), name="session-keepalive"),
            asyncio.create_task(self._write_frames(outbound), name="session-writer"),
        ]
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                logger.info("Session task %s ended", task.get_name())
        finally:
            pending = tasks + list(in_flight)
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info("Session %s closed", self.session_id)

    async def _read_frames(
        self,
        outbound: asyncio.Queue[Frame],
        semaphore: asyncio.Semaphore,
        in_flight: set[asyncio.Task[None]],
        no_confirm: bool,
        mailbox: Mailbox[ActionMessage],
    ) -> None:
        while True:
            try:
                frame = await self._transport.recv()
            except TransportError as e:
                logger.error("Error in stream: %s", e)
                return
            if frame is None:
                logger.info("Inbound stream ended")
                return
            logger.info("Received message: %s", frame)
            task = asyncio.create_task(
                self._handle(frame, outbound, semaphore, no_confirm, mailbox)
            )
            in_flight.add(task)
            task.add_done_callback(in_flight.discard)

    async def _handle(
        self,
        frame: Frame,
        outbound: asyncio.Queue[Frame],
        semaphore: asyncio.Semaphore,
        no_confirm: bool,
        mailbox: Mailbox[ActionMessage],
    ) -> None:
        async with semaphore:
            try:
                reply = await handle_frame(frame, no_confirm, mailbox, self._runner)
            except (ValidationError, SessionError) as e:
                logger.error("Error processing message: %s", e)
                return
        if reply is not None:
            outbound.put_nowait(reply)

    async def _send_keepalives(self, outbound: asyncio.Queue[Frame]) -> None:
        while True:
            outbound.put_nowait(Frame.ping(self._keepalive_payload))
            await asyncio.sleep(self._keepalive_interval)

    async def _write_frames(self, outbound: asyncio.Queue[Frame]) -> None:
        while True:
            frame = await outbound.get()
            logger.info("Sending message: %s", frame)
            try:
                await self._transport.send(frame)
            except TransportError as e:
                logger.error("Error in sink: %s", e)
                return
