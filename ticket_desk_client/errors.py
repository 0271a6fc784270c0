"""Client error types for Ticket Desk server interactions."""

from __future__ import annotations


class TicketDeskClientError(Exception):
    """Base error for Ticket Desk client failures."""


class TicketDeskConnectionError(TicketDeskClientError):
    """Network connection to the server failed."""


class TicketDeskTimeout(TicketDeskConnectionError):
    """Timeout while connecting to the server."""


class TicketDeskHandshakeError(TicketDeskConnectionError):
    """WebSocket handshake failed."""


class TicketDeskEndpointError(TicketDeskConnectionError):
    """Endpoint URI cannot be dialed (bad scheme, host or port)."""


class NotConnectedError(TicketDeskClientError):
    """Operation attempted while the session is not open."""


class InvalidCommandError(TicketDeskClientError):
    """Outbound command has an unknown type or is missing a required field."""


class MalformedMessageError(TicketDeskClientError):
    """Inbound frame could not be parsed into a known message shape."""

    def __init__(self, message: str, raw: str | None = None) -> None:
        super().__init__(message)
        self.raw = raw
