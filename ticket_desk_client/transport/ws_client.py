"""WebSocket client wrapper for the Ticket Desk server."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..errors import NotConnectedError, TicketDeskConnectionError
from .ws import connect_websocket

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class TicketDeskWsMessageType(Enum):
    """Normalized WebSocket message types."""

    TEXT = "text"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class TicketDeskWsMessage:
    """Normalized WebSocket message payload."""

    type: TicketDeskWsMessageType
    data: str | None = None


class TicketDeskWsClient:
    """Wrapper around websockets library for the Ticket Desk server."""

    def __init__(self) -> None:
        self._ws: ClientConnection | None = None

    @property
    def connected(self) -> bool:
        return self._ws is not None

    async def connect(
        self,
        endpoint: str,
        *,
        ping_interval: int | None = 20,
        timeout: float = 15.0,
    ) -> None:
        """Connect to the server websocket."""
        self._ws = await connect_websocket(
            endpoint,
            ping_interval=ping_interval,
            timeout=timeout,
        )

    async def close(self) -> None:
        """Close the websocket connection."""
        if self._ws is not None:
            await self._ws.close()

    async def send_text(self, data: str) -> None:
        """Send one text frame.

        Raises:
            NotConnectedError: If connect() has not completed
            TicketDeskConnectionError: If the socket rejected the frame
        """
        if self._ws is None:
            raise NotConnectedError("WebSocket is not connected")
        try:
            await self._ws.send(data)
        except (ConnectionClosed, WebSocketException, OSError) as err:
            raise TicketDeskConnectionError("WebSocket send failed") from err

    def __aiter__(self) -> AsyncIterator[TicketDeskWsMessage]:
        if self._ws is None:
            raise NotConnectedError("WebSocket is not connected")
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[TicketDeskWsMessage]:
        if self._ws is None:
            raise NotConnectedError("WebSocket is not connected")

        try:
            async for msg in self._ws:
                normalized = self._normalize_message(msg)
                if normalized is None:
                    continue
                yield normalized
        except ConnectionClosed:
            yield TicketDeskWsMessage(type=TicketDeskWsMessageType.CLOSED)
        except Exception:
            yield TicketDeskWsMessage(type=TicketDeskWsMessageType.ERROR)
        else:
            # Normal iteration completion means the peer closed gracefully.
            yield TicketDeskWsMessage(type=TicketDeskWsMessageType.CLOSED)

    @staticmethod
    def _normalize_message(msg: Any) -> TicketDeskWsMessage | None:
        """Normalize raw frames into TicketDeskWsMessage; binary frames are skipped."""
        if isinstance(msg, (bytes, bytearray, memoryview)):
            return None
        if isinstance(msg, str):
            return TicketDeskWsMessage(TicketDeskWsMessageType.TEXT, msg)
        return TicketDeskWsMessage(TicketDeskWsMessageType.TEXT, str(msg))
