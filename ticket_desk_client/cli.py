"""Ticket Desk command-line client.

Usage:
    ticket-desk                                   # Prompt for an identifier, connect to the default endpoint
    ticket-desk --client-id agent-7               # Skip the identifier prompt
    ticket-desk --endpoint ws://desk:8080/ws      # Custom server endpoint
    ticket-desk --log-level debug                 # Show frame-level logging

Every option can also be set through a TICKET_DESK_* environment variable.
"""

from __future__ import annotations

import asyncio
import logging
import sys

import click

from .config import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_ENDPOINT,
    DEFAULT_PING_INTERVAL,
    ENV_PREFIX,
    ClientConfig,
)
from .console import StdinLineReader, TicketConsole
from .dispatcher import TicketDispatcher

LOG_LEVELS = ("debug", "info", "warning", "error")


async def run_client(config: ClientConfig, client_id: str) -> int:
    """Connect, run the console loop and return a process exit code."""
    dispatcher = TicketDispatcher(config.create_transport())
    console = TicketConsole(dispatcher, StdinLineReader().readline)

    if not await dispatcher.connect(config.endpoint, client_id):
        click.echo(f"Could not connect to {config.endpoint}", err=True)
        return 1

    click.echo(f"Connected to {config.endpoint} as {client_id}.")
    try:
        await console.run()
    finally:
        await dispatcher.close()
    return 0


@click.command()
@click.option(
    "--endpoint",
    default=DEFAULT_ENDPOINT,
    show_default=True,
    envvar=f"{ENV_PREFIX}_ENDPOINT",
    help="WebSocket URI of the ticket server",
)
@click.option(
    "--client-id",
    envvar=f"{ENV_PREFIX}_CLIENT_ID",
    help="Operator identifier (prompted for when omitted)",
)
@click.option(
    "--ping-interval",
    type=click.IntRange(min=0),
    default=DEFAULT_PING_INTERVAL,
    show_default=True,
    envvar=f"{ENV_PREFIX}_PING_INTERVAL",
    help="Keepalive ping interval in seconds, 0 disables pings",
)
@click.option(
    "--connect-timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=DEFAULT_CONNECT_TIMEOUT,
    show_default=True,
    envvar=f"{ENV_PREFIX}_CONNECT_TIMEOUT",
    help="Seconds to wait for the connection to open",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="warning",
    show_default=True,
    envvar=f"{ENV_PREFIX}_LOG_LEVEL",
    help="Logging verbosity",
)
def main(
    endpoint: str,
    client_id: str | None,
    ping_interval: int,
    connect_timeout: float,
    log_level: str,
) -> None:
    """Connect to a ticket server and manage tickets interactively."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = ClientConfig(
            endpoint=endpoint,
            ping_interval=ping_interval or None,
            connect_timeout=connect_timeout,
        )
    except ValueError as err:
        raise click.BadParameter(str(err)) from err

    if not client_id:
        client_id = click.prompt("Client ID").strip()
    if not client_id:
        raise click.UsageError("Client ID must not be empty")

    try:
        exit_code = asyncio.run(run_client(config, client_id))
    except KeyboardInterrupt:
        click.echo("\nShutting down", err=True)
        exit_code = 0
    sys.exit(exit_code)
