"""Relay session module for serverwitch.

Owns the duplex channel to the relay, correlates requests with
responses, and talks to the terminal view through channels.

Public API:
    Mailbox -- Bounded, closeable notification queue
    Acknowledgement -- Single-use confirmation reply channel
    Session -- A session on the relay
    Transport -- Abstract frame transport
"""

from serverwitch.domain.channels import (
    Acknowledgement,
    AcknowledgementClosedError,
    ChannelError,
    Mailbox,
    MailboxClosedError,
    MailboxFullError,
)
from serverwitch.session.engine import Session, SessionError
from serverwitch.session.transport import Transport, TransportError, WebSocketTransport

__all__ = [
    "Acknowledgement",
    "AcknowledgementClosedError",
    "ChannelError",
    "Mailbox",
    "MailboxClosedError",
    "MailboxFullError",
    "Session",
    "SessionError",
    "Transport",
    "TransportError",
    "WebSocketTransport",
]
