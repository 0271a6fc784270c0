"""Protocol dispatcher for the Ticket Desk server.

This module provides the API the operator console talks to. It handles:
- Announcing the operator identifier with an init frame on connect
- Validating and serializing outbound ticket actions
- Routing inbound frames by message_type to registered callbacks
- Keeping the last ticket_list snapshot pushed by the server
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from .errors import (
    InvalidCommandError,
    MalformedMessageError,
    NotConnectedError,
    TicketDeskClientError,
)
from .protocol import (
    ACTION_COMMAND_TYPES,
    CommandType,
    TicketListEvent,
    UnrecognizedEvent,
    build_command,
    build_init,
    decode_event,
    encode_command,
    parse_command_type,
)
from .transport import TransportSession, TransportState

_LOGGER = logging.getLogger(__name__)


class TicketDispatcher:
    """Tag-dispatching client session for one operator.

    Usage:
        dispatcher = TicketDispatcher()
        dispatcher.on_ticket_list_update(render_tickets)
        await dispatcher.connect("ws://localhost:8080/ws", "agent-7")
        dispatcher.assign_ticket(2)
        await dispatcher.close()
    """

    def __init__(self, transport: TransportSession | None = None) -> None:
        """Initialize dispatcher.

        Args:
            transport: Transport session to own; a default one is created
                when omitted. It must not be shared with another dispatcher.
        """
        self._transport = transport if transport is not None else TransportSession()
        self._identifier: str | None = None
        self._tickets: list[Any] = []

        self._ticket_list_callback: Callable[[list[Any]], None] | None = None
        self._unrecognized_callback: Callable[[UnrecognizedEvent], None] | None = None
        self._error_callback: Callable[[TicketDeskClientError], None] | None = None
        self._closed_callback: Callable[[], None] | None = None

        self._transport.on_opened(self._handle_opened)
        self._transport.on_message(self._handle_message)
        self._transport.on_error(self._handle_error)
        self._transport.on_closed(self._handle_closed)

    @property
    def identifier(self) -> str | None:
        return self._identifier

    @property
    def tickets(self) -> list[Any]:
        """Most recent ticket snapshot pushed by the server."""
        return list(self._tickets)

    @property
    def is_connected(self) -> bool:
        return self._transport.state is TransportState.OPEN

    # -------------------------------------------------------------------------
    # Public API: Callbacks
    # -------------------------------------------------------------------------

    def on_ticket_list_update(self, callback: Callable[[list[Any]], None]) -> None:
        """Register callback receiving each new ticket snapshot."""
        self._ticket_list_callback = callback

    def on_unrecognized(self, callback: Callable[[UnrecognizedEvent], None]) -> None:
        """Register callback for frames with an unhandled message_type."""
        self._unrecognized_callback = callback

    def on_error(self, callback: Callable[[TicketDeskClientError], None]) -> None:
        """Register callback for transport failures and malformed frames."""
        self._error_callback = callback

    def on_closed(self, callback: Callable[[], None]) -> None:
        self._closed_callback = callback

    # -------------------------------------------------------------------------
    # Public API: Connection Management
    # -------------------------------------------------------------------------

    async def connect(self, endpoint: str, identifier: str) -> bool:
        """Open the connection and announce the identifier.

        Returns:
            True once init has been queued, False if the endpoint was unreachable

        Raises:
            InvalidCommandError: If the identifier is empty
            TicketDeskClientError: If this dispatcher already connected once
        """
        if not isinstance(identifier, str) or not identifier:
            raise InvalidCommandError("identifier must be a non-empty string")
        if self._identifier is not None:
            raise TicketDeskClientError(
                f"Dispatcher already connected as {self._identifier!r}"
            )

        self._identifier = identifier
        _LOGGER.info("[%s] Connecting to %s", identifier, endpoint)
        return await self._transport.open(endpoint)

    async def close(self) -> None:
        """Close the underlying transport."""
        _LOGGER.info("[%s] Closing dispatcher", self._identifier)
        await self._transport.close()

    # -------------------------------------------------------------------------
    # Public API: Commands
    # -------------------------------------------------------------------------

    def send_command(
        self, command_type: CommandType | str, ticket_id: int | None = None
    ) -> None:
        """Validate and send a ticket action.

        Raises:
            InvalidCommandError: If the type is not an action or ticket_id is invalid
            NotConnectedError: If the session is not open
        """
        resolved = parse_command_type(command_type)
        if resolved not in ACTION_COMMAND_TYPES:
            raise InvalidCommandError(f"{resolved.value} is not a ticket action")
        if self._identifier is None or not self.is_connected:
            raise NotConnectedError(
                f"Cannot send {resolved.value}: transport is {self._transport.state.value}"
            )

        command = build_command(
            resolved, client_id=self._identifier, ticket_id=ticket_id
        )
        self._transport.send(encode_command(command))
        _LOGGER.debug(
            "[%s] %s sent for ticket %s", self._identifier, resolved.value, ticket_id
        )

    def assign_ticket(self, ticket_id: int) -> None:
        self.send_command(CommandType.ASSIGN_TICKET, ticket_id)

    def abandon_ticket(self, ticket_id: int) -> None:
        self.send_command(CommandType.ABANDON_TICKET, ticket_id)

    def delete_ticket(self, ticket_id: int) -> None:
        self.send_command(CommandType.DELETE_TICKET, ticket_id)

    # -------------------------------------------------------------------------
    # Internal: Transport Handlers
    # -------------------------------------------------------------------------

    def _handle_opened(self) -> None:
        """Send init as the first frame of the session."""
        if self._identifier is None:
            return
        self._transport.send(encode_command(build_init(self._identifier)))
        _LOGGER.debug("[%s] Init sent", self._identifier)

    def _handle_message(self, raw: str) -> None:
        try:
            event = decode_event(raw)
        except MalformedMessageError as err:
            _LOGGER.warning("[%s] Invalid message: %s", self._identifier, err)
            self._emit(self._error_callback, err)
            return

        if isinstance(event, TicketListEvent):
            self._tickets = list(event.tickets)
            _LOGGER.debug(
                "[%s] Ticket list: %d tickets", self._identifier, len(self._tickets)
            )
            self._emit(self._ticket_list_callback, list(self._tickets))
        else:
            _LOGGER.debug(
                "[%s] Unknown message type: %s", self._identifier, event.message_type
            )
            self._emit(self._unrecognized_callback, event)

    def _handle_error(self, err: TicketDeskClientError) -> None:
        self._emit(self._error_callback, err)

    def _handle_closed(self) -> None:
        _LOGGER.info("[%s] Connection closed", self._identifier)
        self._emit(self._closed_callback)

    def _emit(self, callback: Callable[..., None] | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as err:
            _LOGGER.exception(
                "[%s] Dispatcher callback error: %s", self._identifier, err
            )
