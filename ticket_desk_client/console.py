"""Operator console for the Ticket Desk client.

Reads menu choices, turns them into dispatcher commands and renders what the
dispatcher reports. The loop is explicit so session length never grows the
call stack.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
import threading
from collections.abc import Awaitable, Callable
from typing import Any, TextIO

import click

from .dispatcher import TicketDispatcher
from .errors import TicketDeskClientError
from .protocol import CommandType, UnrecognizedEvent

_LOGGER = logging.getLogger(__name__)

MENU = "[a] assign  [b] abandon  [d] delete  [l] list  [q] quit"

_ACTIONS: dict[str, tuple[CommandType, str]] = {
    "a": (CommandType.ASSIGN_TICKET, "assign"),
    "b": (CommandType.ABANDON_TICKET, "abandon"),
    "d": (CommandType.DELETE_TICKET, "delete"),
}


def format_ticket(ticket: Any) -> str:
    """Render one ticket; tickets without an id fall back to JSON."""
    if isinstance(ticket, dict) and "id" in ticket:
        owner = ticket.get("assigned_to") or "unassigned"
        return f"#{ticket['id']}  {owner}"
    return json.dumps(ticket, ensure_ascii=False, default=str)


def format_ticket_list(tickets: list[Any]) -> str:
    if not tickets:
        return "No tickets."
    lines = ["Current tickets:"]
    lines.extend(f"  {format_ticket(ticket)}" for ticket in tickets)
    return "\n".join(lines)


class StdinLineReader:
    """Read stdin lines on a daemon thread and hand them to the event loop.

    A daemon thread keeps a pending read from blocking interpreter exit once
    the connection has closed.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stdin
        self._queue: asyncio.Queue[str | None] | None = None
        self._thread: threading.Thread | None = None

    def _start(self) -> asyncio.Queue[str | None]:
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[str | None] = asyncio.Queue()

        def pump() -> None:
            for line in self._stream:
                loop.call_soon_threadsafe(queue.put_nowait, line)
            loop.call_soon_threadsafe(queue.put_nowait, None)

        self._thread = threading.Thread(target=pump, name="stdin-reader", daemon=True)
        self._thread.start()
        return queue

    async def readline(self) -> str | None:
        """Return the next line without its newline, or None at EOF."""
        if self._queue is None:
            self._queue = self._start()
        line = await self._queue.get()
        if line is None:
            # Keep reporting EOF on later calls
            self._queue.put_nowait(None)
            return None
        return line.rstrip("\r\n")


class TicketConsole:
    """Menu loop driving a TicketDispatcher from operator input."""

    def __init__(
        self,
        dispatcher: TicketDispatcher,
        read_line: Callable[[], Awaitable[str | None]],
        *,
        echo: Callable[[str], None] = click.echo,
    ) -> None:
        self._dispatcher = dispatcher
        self._read_line = read_line
        self._echo = echo
        self._closed = asyncio.Event()

        dispatcher.on_ticket_list_update(self._render_tickets)
        dispatcher.on_unrecognized(self._render_unrecognized)
        dispatcher.on_error(self._render_error)
        dispatcher.on_closed(self._handle_closed)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    async def run(self) -> None:
        """Prompt for actions until quit, EOF or connection close."""
        while not self._closed.is_set():
            choice = await self._prompt(MENU)
            if choice is None:
                break
            choice = choice.strip().lower()
            _LOGGER.debug("Operator choice: %r", choice)
            if not choice:
                continue
            if choice == "q":
                break
            if choice == "l":
                self._echo(format_ticket_list(self._dispatcher.tickets))
            elif choice in _ACTIONS:
                await self._run_action(*_ACTIONS[choice])
            else:
                self._echo(f"Unknown choice: {choice}")

    async def _run_action(self, command_type: CommandType, verb: str) -> None:
        answer = await self._prompt(f"Ticket number to {verb}:")
        if answer is None or not answer.strip():
            return
        text = answer.strip()
        if not (text.isascii() and text.isdecimal()):
            self._echo(f"Not a ticket number: {text}")
            return
        ticket_id = int(text)
        try:
            self._dispatcher.send_command(command_type, ticket_id)
        except TicketDeskClientError as err:
            self._echo(f"Could not {verb} ticket {ticket_id}: {err}")

    async def _prompt(self, text: str) -> str | None:
        """Read one line, returning None if the connection closes first."""
        self._echo(text)
        read = asyncio.ensure_future(self._read_line())
        closed = asyncio.ensure_future(self._closed.wait())
        done, _ = await asyncio.wait(
            {read, closed}, return_when=asyncio.FIRST_COMPLETED
        )
        if read in done:
            closed.cancel()
            return read.result()
        read.cancel()
        return None

    def _render_tickets(self, tickets: list[Any]) -> None:
        self._echo(format_ticket_list(tickets))

    def _render_unrecognized(self, event: UnrecognizedEvent) -> None:
        self._echo(
            f"Unknown server message: {json.dumps(event.payload, ensure_ascii=False, default=str)}"
        )

    def _render_error(self, err: TicketDeskClientError) -> None:
        self._echo(f"Error: {err}")

    def _handle_closed(self) -> None:
        self._echo("Connection closed.")
        self._closed.set()
