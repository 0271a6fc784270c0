"""Protocol helpers for Ticket Desk wire frames.

Every frame is a JSON object whose ``message_type`` field selects the
variant. Outbound frames are ``Command`` values; inbound frames decode into
``TicketListEvent`` or, for any other tag, ``UnrecognizedEvent``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeGuard

from .errors import InvalidCommandError, MalformedMessageError

MESSAGE_TYPE_FIELD = "message_type"
TICKET_LIST = "ticket_list"


class CommandType(str, Enum):
    """Outbound command tags."""

    INIT = "init"
    ASSIGN_TICKET = "assign_ticket"
    ABANDON_TICKET = "abandon_ticket"
    DELETE_TICKET = "delete_ticket"


ACTION_COMMAND_TYPES: frozenset[CommandType] = frozenset(
    {
        CommandType.ASSIGN_TICKET,
        CommandType.ABANDON_TICKET,
        CommandType.DELETE_TICKET,
    }
)


@dataclass(frozen=True)
class Command:
    """Outbound command frame."""

    type: CommandType
    client_id: str
    ticket_id: int | None = None

    def to_wire(self) -> dict[str, Any]:
        frame: dict[str, Any] = {
            MESSAGE_TYPE_FIELD: self.type.value,
            "client_id": self.client_id,
        }
        if self.ticket_id is not None:
            frame["ticket_id"] = self.ticket_id
        return frame


@dataclass(frozen=True)
class TicketListEvent:
    """Server push carrying the complete current ticket list."""

    tickets: list[Any] = field(default_factory=list)


@dataclass(frozen=True)
class UnrecognizedEvent:
    """Inbound frame with a tag this client does not handle."""

    message_type: str
    payload: dict[str, Any]


Event = TicketListEvent | UnrecognizedEvent


def _is_ticket_id(value: Any) -> TypeGuard[int]:
    """Return True for ints, rejecting bool which is an int subclass."""
    return isinstance(value, int) and not isinstance(value, bool)


def parse_command_type(value: CommandType | str) -> CommandType:
    """Resolve a command tag, raising InvalidCommandError for unknown tags."""
    if isinstance(value, CommandType):
        return value
    try:
        return CommandType(value)
    except ValueError as err:
        raise InvalidCommandError(f"Unknown command type: {value!r}") from err


def build_command(
    command_type: CommandType | str,
    *,
    client_id: str,
    ticket_id: int | None = None,
) -> Command:
    """Build and validate an outbound command.

    Args:
        command_type: Command tag or its string value.
        client_id: Operator identifier, must be non-empty.
        ticket_id: Ticket number; required for every type except init.

    Raises:
        InvalidCommandError: If the tag is unknown or a required field is
            missing or has the wrong type.
    """
    resolved = parse_command_type(command_type)

    if not isinstance(client_id, str) or not client_id:
        raise InvalidCommandError("client_id must be a non-empty string")

    if resolved is CommandType.INIT:
        if ticket_id is not None:
            raise InvalidCommandError("init does not take a ticket_id")
        return Command(type=resolved, client_id=client_id)

    if ticket_id is None:
        raise InvalidCommandError(f"{resolved.value} requires a ticket_id")
    if not _is_ticket_id(ticket_id):
        raise InvalidCommandError(
            f"ticket_id must be an integer, got {type(ticket_id).__name__}"
        )
    return Command(type=resolved, client_id=client_id, ticket_id=ticket_id)


def build_init(client_id: str) -> Command:
    """Construct the init frame announcing the operator identifier."""
    return build_command(CommandType.INIT, client_id=client_id)


def encode_command(command: Command) -> str:
    """Serialize a command into a single-line UTF-8 JSON frame."""
    return json.dumps(command.to_wire(), ensure_ascii=False)


def decode_event(raw: str | bytes) -> Event:
    """Decode one inbound frame.

    Raises:
        MalformedMessageError: If the frame is not a JSON object with a
            string message_type, or a ticket_list without a tickets list.
    """
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    try:
        data = json.loads(text)
    except (TypeError, ValueError, RecursionError) as err:
        raise MalformedMessageError(f"Frame is not valid JSON: {err}", raw=text) from err

    if not isinstance(data, dict):
        raise MalformedMessageError(
            f"Frame must be a JSON object, got {type(data).__name__}", raw=text
        )

    message_type = data.get(MESSAGE_TYPE_FIELD)
    if not isinstance(message_type, str):
        raise MalformedMessageError(
            f"Frame is missing a string {MESSAGE_TYPE_FIELD}", raw=text
        )

    if message_type != TICKET_LIST:
        return UnrecognizedEvent(message_type=message_type, payload=data)

    tickets = data.get("tickets")
    if tickets is None:
        # null is accepted as an empty list
        tickets = []
    if not isinstance(tickets, list):
        raise MalformedMessageError("ticket_list tickets must be a list", raw=text)
    return TicketListEvent(tickets=tickets)
