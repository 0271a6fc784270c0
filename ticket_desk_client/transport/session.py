"""Transport session owning one outbound WebSocket connection.

The session moves through ``Idle -> Connecting -> Open -> Closed`` (or
``Connecting -> Closed`` when the endpoint is unreachable) and never
reconnects. Inbound frames and lifecycle changes are delivered to
single-consumer callbacks on the event loop, one at a time, in arrival
order. Outbound frames are queued by ``send`` and written by a background
task, so callers never block on the socket.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from ..errors import (
    NotConnectedError,
    TicketDeskClientError,
    TicketDeskConnectionError,
)
from .ws_client import TicketDeskWsClient, TicketDeskWsMessageType

_LOGGER = logging.getLogger(__name__)


class TransportState(Enum):
    """Lifecycle states of a transport session."""

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class TransportSession:
    """Single WebSocket connection with callback-based delivery.

    Usage:
        transport = TransportSession()
        transport.on_message(handle_frame)
        transport.on_closed(handle_closed)
        if await transport.open("ws://localhost:8080/ws"):
            transport.send('{"message_type": "init", "client_id": "agent-7"}')
        await transport.close()
    """

    def __init__(
        self,
        *,
        ping_interval: int | None = 20,
        connect_timeout: float = 15.0,
        flush_timeout: float = 1.0,
    ) -> None:
        self._ping_interval = ping_interval
        self._connect_timeout = connect_timeout
        self._flush_timeout = flush_timeout

        self._endpoint: str | None = None
        self._state = TransportState.IDLE
        self._ws: TicketDeskWsClient | None = None
        self._outbox: asyncio.Queue[str] = asyncio.Queue()
        self._listen_task: asyncio.Task[None] | None = None
        self._writer_task: asyncio.Task[None] | None = None
        self._closing = False
        self._closed_emitted = False

        self._message_callback: Callable[[str], None] | None = None
        self._opened_callback: Callable[[], None] | None = None
        self._closed_callback: Callable[[], None] | None = None
        self._error_callback: Callable[[TicketDeskClientError], None] | None = None

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def endpoint(self) -> str | None:
        return self._endpoint

    # -------------------------------------------------------------------------
    # Public API: Callbacks
    # -------------------------------------------------------------------------

    def on_message(self, callback: Callable[[str], None]) -> None:
        """Register callback for inbound text frames."""
        self._message_callback = callback

    def on_opened(self, callback: Callable[[], None]) -> None:
        self._opened_callback = callback

    def on_closed(self, callback: Callable[[], None]) -> None:
        """Register callback fired exactly once when the session ends."""
        self._closed_callback = callback

    def on_error(self, callback: Callable[[TicketDeskClientError], None]) -> None:
        """Register callback for transport-level failures."""
        self._error_callback = callback

    # -------------------------------------------------------------------------
    # Public API: Connection Management
    # -------------------------------------------------------------------------

    async def open(self, endpoint: str) -> bool:
        """Open the connection.

        Failures are reported through the error and closed callbacks rather
        than raised.

        Returns:
            True once the session is open, False if the endpoint was unreachable
        """
        if self._state is not TransportState.IDLE:
            raise TicketDeskClientError(
                f"Transport session is {self._state.value}; create a new session to reconnect"
            )

        self._endpoint = endpoint
        self._set_state(TransportState.CONNECTING)
        _LOGGER.info("[%s] Connecting", endpoint)

        ws_client = TicketDeskWsClient()
        try:
            await ws_client.connect(
                endpoint,
                ping_interval=self._ping_interval,
                timeout=self._connect_timeout,
            )
        except TicketDeskConnectionError as err:
            _LOGGER.warning("[%s] Connection failed: %s", endpoint, err)
            self._closing = True
            self._emit_error(err)
            self._set_state(TransportState.CLOSED)
            self._emit_closed()
            return False

        if self._closing:
            # close() was called while the handshake was in flight
            await ws_client.close()
            return False

        self._ws = ws_client
        self._set_state(TransportState.OPEN)
        _LOGGER.info("[%s] WebSocket connected", endpoint)

        self._writer_task = asyncio.create_task(self._write_loop())
        self._listen_task = asyncio.create_task(self._listen())
        self._emit(self._opened_callback)
        return self._state is TransportState.OPEN

    def send(self, raw_message: str) -> None:
        """Queue a text frame for transmission.

        Raises:
            NotConnectedError: If the session is not open
        """
        if self._state is not TransportState.OPEN or self._closing:
            raise NotConnectedError(
                f"Cannot send while transport is {self._state.value}"
            )
        self._outbox.put_nowait(raw_message)

    async def close(self) -> None:
        """Close the session; safe to call any number of times.

        Frames already accepted by ``send`` get up to ``flush_timeout`` seconds
        to reach the socket before the writer is stopped.
        """
        if self._closing:
            return
        self._closing = True
        _LOGGER.info("[%s] Closing transport", self._endpoint)
        await self._flush_outbox()
        await self._teardown()

    # -------------------------------------------------------------------------
    # Internal: Delivery
    # -------------------------------------------------------------------------

    async def _listen(self) -> None:
        """Deliver inbound frames until the connection ends."""
        if self._ws is None:
            return

        try:
            async for msg in self._ws:
                if msg.type is TicketDeskWsMessageType.TEXT:
                    _LOGGER.debug("[%s] Received frame", self._endpoint)
                    self._emit(self._message_callback, msg.data)
                elif msg.type is TicketDeskWsMessageType.CLOSED:
                    _LOGGER.info("[%s] WebSocket closed by server", self._endpoint)
                    break
                elif msg.type is TicketDeskWsMessageType.ERROR:
                    _LOGGER.error("[%s] WebSocket error", self._endpoint)
                    self._emit_error(TicketDeskConnectionError("WebSocket error"))
                    break
        except asyncio.CancelledError:
            _LOGGER.debug("[%s] Listener cancelled", self._endpoint)
            raise
        except TicketDeskClientError as err:
            _LOGGER.warning("[%s] Client error: %s", self._endpoint, err)
            self._emit_error(err)

        if not self._closing:
            self._closing = True
            await self._teardown()

    async def _write_loop(self) -> None:
        """Drain the outbox onto the socket in queue order."""
        while self._ws is not None:
            raw_message = await self._outbox.get()
            try:
                await self._ws.send_text(raw_message)
            except TicketDeskClientError as err:
                _LOGGER.error("[%s] Failed to send frame: %s", self._endpoint, err)
                self._emit_error(
                    err
                    if isinstance(err, TicketDeskConnectionError)
                    else TicketDeskConnectionError(str(err))
                )
                if not self._closing:
                    self._closing = True
                    await self._teardown()
                return
            finally:
                self._outbox.task_done()
            _LOGGER.debug("[%s] Sent frame", self._endpoint)

    async def _flush_outbox(self) -> None:
        """Wait briefly for queued frames to be written."""
        if self._writer_task is None or self._writer_task.done():
            return
        # the writer exits early when a send fails
        flushed = asyncio.ensure_future(self._outbox.join())
        done, _ = await asyncio.wait(
            {flushed, self._writer_task},
            timeout=self._flush_timeout,
            return_when=asyncio.FIRST_COMPLETED,
        )
        flushed.cancel()
        if flushed not in done and not self._outbox.empty():
            _LOGGER.warning(
                "[%s] Dropping %d unsent frame(s) on close",
                self._endpoint,
                self._outbox.qsize(),
            )

    async def _teardown(self) -> None:
        """Stop background tasks, close the socket and emit closed once."""
        current = asyncio.current_task()
        for task in (self._writer_task, self._listen_task):
            if task is None or task is current or task.done():
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if self._ws is not None:
            ws, self._ws = self._ws, None
            try:
                await asyncio.wait_for(ws.close(), timeout=2.0)
            except TimeoutError:
                _LOGGER.warning("[%s] WebSocket close timed out", self._endpoint)

        self._set_state(TransportState.CLOSED)
        self._emit_closed()

    # -------------------------------------------------------------------------
    # Internal: Callback helpers
    # -------------------------------------------------------------------------

    def _set_state(self, state: TransportState) -> None:
        if self._state is not state:
            _LOGGER.debug(
                "[%s] State: %s → %s", self._endpoint, self._state.value, state.value
            )
            self._state = state

    def _emit(self, callback: Callable[..., None] | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as err:
            _LOGGER.exception("[%s] Transport callback error: %s", self._endpoint, err)

    def _emit_error(self, err: TicketDeskClientError) -> None:
        self._emit(self._error_callback, err)

    def _emit_closed(self) -> None:
        if self._closed_emitted:
            return
        self._closed_emitted = True
        self._emit(self._closed_callback)
