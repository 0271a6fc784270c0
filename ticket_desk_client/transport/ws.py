"""Endpoint handling and connection setup for the Ticket Desk server."""

from __future__ import annotations

import asyncio

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import InvalidHandshake, InvalidURI, WebSocketException
from websockets.uri import parse_uri

from ..errors import (
    TicketDeskConnectionError,
    TicketDeskEndpointError,
    TicketDeskHandshakeError,
    TicketDeskTimeout,
)

# Ticket lists are small JSON documents; anything larger is refused by the
# library before it reaches the decoder.
MAX_FRAME_SIZE = 1 << 20
CLOSE_TIMEOUT = 5.0


def build_ws_url(host: str, port: int, path: str = "/ws") -> str:
    """Build a ws:// endpoint URI from its parts."""
    if not path.startswith("/"):
        path = f"/{path}"
    return f"ws://{host}:{port}{path}"


def check_endpoint(endpoint: str) -> str:
    """Return the endpoint unchanged if it can be dialed.

    Raises:
        TicketDeskEndpointError: If it is not a ws:// or wss:// URI with a
            host and a port in range.
    """
    try:
        parse_uri(endpoint)
    except (InvalidURI, ValueError, TypeError) as err:
        raise TicketDeskEndpointError(
            f"Invalid endpoint {endpoint!r}, expected ws://host:port/path: {err}"
        ) from err
    return endpoint


async def connect_websocket(
    endpoint: str,
    *,
    ping_interval: int | None = 20,
    timeout: float = 15.0,
    max_size: int | None = MAX_FRAME_SIZE,
) -> ClientConnection:
    """Dial the server and complete the opening handshake.

    The endpoint is checked before any socket is opened, so a bad host or
    port surfaces as a connection error like an unreachable server does.

    Args:
        endpoint: ws:// or wss:// URI of the ticket server
        ping_interval: Seconds between keepalive pings, None disables them
        timeout: Seconds allowed for the TCP connect plus handshake
        max_size: Largest inbound frame accepted, in bytes

    Raises:
        TicketDeskEndpointError: The endpoint is unusable
        TicketDeskTimeout: No handshake within ``timeout``
        TicketDeskHandshakeError: The server refused the upgrade
        TicketDeskConnectionError: The socket could not be opened
    """
    check_endpoint(endpoint)
    try:
        async with asyncio.timeout(timeout):
            return await websockets.connect(
                endpoint,
                ping_interval=ping_interval,
                close_timeout=CLOSE_TIMEOUT,
                max_size=max_size,
            )
    except TimeoutError as err:
        raise TicketDeskTimeout(
            f"No handshake from {endpoint} within {timeout}s"
        ) from err
    except InvalidHandshake as err:
        raise TicketDeskHandshakeError(
            f"Server at {endpoint} refused the upgrade: {err}"
        ) from err
    except ValueError as err:
        raise TicketDeskEndpointError(f"Invalid endpoint {endpoint!r}: {err}") from err
    except (OSError, WebSocketException) as err:
        raise TicketDeskConnectionError(f"Cannot reach {endpoint}: {err}") from err
