"""Transport layer for the Ticket Desk client.

This package contains all IO and network handling.

Components:
- ws: WebSocket connection setup and endpoint URIs
- ws_client: WebSocket message iteration
- session: Transport session lifecycle and callback delivery
"""

from .session import TransportSession, TransportState
from .ws import build_ws_url, check_endpoint, connect_websocket
from .ws_client import TicketDeskWsClient, TicketDeskWsMessage, TicketDeskWsMessageType

__all__ = [
    "TicketDeskWsClient",
    "TicketDeskWsMessage",
    "TicketDeskWsMessageType",
    "TransportSession",
    "TransportState",
    "build_ws_url",
    "check_endpoint",
    "connect_websocket",
]
