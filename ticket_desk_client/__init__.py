"""Ticket Desk WebSocket client."""

__version__ = "0.1.0"

from .config import DEFAULT_ENDPOINT, ClientConfig
from .dispatcher import TicketDispatcher
from .errors import (
    InvalidCommandError,
    MalformedMessageError,
    NotConnectedError,
    TicketDeskClientError,
    TicketDeskConnectionError,
    TicketDeskEndpointError,
    TicketDeskHandshakeError,
    TicketDeskTimeout,
)
from .protocol import (
    Command,
    CommandType,
    Event,
    TicketListEvent,
    UnrecognizedEvent,
    build_command,
    decode_event,
    encode_command,
)
from .transport import TransportSession, TransportState

__all__ = [
    "DEFAULT_ENDPOINT",
    "ClientConfig",
    "Command",
    "CommandType",
    "Event",
    "InvalidCommandError",
    "MalformedMessageError",
    "NotConnectedError",
    "TicketDeskClientError",
    "TicketDeskConnectionError",
    "TicketDeskEndpointError",
    "TicketDeskHandshakeError",
    "TicketDeskTimeout",
    "TicketDispatcher",
    "TicketListEvent",
    "TransportSession",
    "TransportState",
    "UnrecognizedEvent",
    "__version__",
    "build_command",
    "decode_event",
    "encode_command",
]
