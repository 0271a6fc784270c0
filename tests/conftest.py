"""Pytest configuration and fixtures for ticket_desk_client tests."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any
from unittest.mock import AsyncMock

import pytest

from ticket_desk_client.errors import NotConnectedError, TicketDeskConnectionError
from ticket_desk_client.transport import (
    TicketDeskWsMessage,
    TicketDeskWsMessageType,
    TransportState,
)


class FakeWsClient:
    """Stand-in for TicketDeskWsClient with a controllable inbound stream."""

    def __init__(self, *, connect_error: Exception | None = None) -> None:
        self.connect = AsyncMock(side_effect=connect_error)
        self.close = AsyncMock()
        self.sent: list[str] = []
        self.send_error: Exception | None = None
        self._inbox: asyncio.Queue[TicketDeskWsMessage] = asyncio.Queue()

    async def send_text(self, data: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(data)

    def push_text(self, data: str) -> None:
        self._inbox.put_nowait(TicketDeskWsMessage(TicketDeskWsMessageType.TEXT, data))

    def push_closed(self) -> None:
        self._inbox.put_nowait(TicketDeskWsMessage(TicketDeskWsMessageType.CLOSED))

    def push_error(self) -> None:
        self._inbox.put_nowait(TicketDeskWsMessage(TicketDeskWsMessageType.ERROR))

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        while True:
            msg = await self._inbox.get()
            yield msg
            if msg.type is not TicketDeskWsMessageType.TEXT:
                return


class FakeTransport:
    """In-memory transport session for dispatcher tests."""

    def __init__(self, *, reachable: bool = True) -> None:
        self.state = TransportState.IDLE
        self.endpoint: str | None = None
        self.sent: list[str] = []
        self.close_calls = 0
        self._reachable = reachable
        self._message_callback: Callable[[str], None] | None = None
        self._opened_callback: Callable[[], None] | None = None
        self._closed_callback: Callable[[], None] | None = None
        self._error_callback: Callable[[Exception], None] | None = None

    def on_message(self, callback: Callable[[str], None]) -> None:
        self._message_callback = callback

    def on_opened(self, callback: Callable[[], None]) -> None:
        self._opened_callback = callback

    def on_closed(self, callback: Callable[[], None]) -> None:
        self._closed_callback = callback

    def on_error(self, callback: Callable[[Exception], None]) -> None:
        self._error_callback = callback

    async def open(self, endpoint: str) -> bool:
        self.endpoint = endpoint
        if not self._reachable:
            self.state = TransportState.CLOSED
            if self._error_callback:
                self._error_callback(TicketDeskConnectionError("unreachable"))
            if self._closed_callback:
                self._closed_callback()
            return False
        self.state = TransportState.OPEN
        if self._opened_callback:
            self._opened_callback()
        return True

    def send(self, raw_message: str) -> None:
        if self.state is not TransportState.OPEN:
            raise NotConnectedError(f"Cannot send while transport is {self.state.value}")
        self.sent.append(raw_message)

    async def close(self) -> None:
        self.close_calls += 1
        if self.state is TransportState.CLOSED:
            return
        self.state = TransportState.CLOSED
        if self._closed_callback:
            self._closed_callback()

    def deliver(self, payload: Any) -> None:
        """Push one inbound frame; non-strings are JSON encoded."""
        raw = payload if isinstance(payload, str) else json.dumps(payload)
        assert self._message_callback is not None
        self._message_callback(raw)

    def remote_close(self) -> None:
        self.state = TransportState.CLOSED
        if self._closed_callback:
            self._closed_callback()

    @property
    def frames(self) -> list[dict[str, Any]]:
        return [json.loads(raw) for raw in self.sent]


@pytest.fixture
def fake_ws() -> FakeWsClient:
    return FakeWsClient()


@pytest.fixture
def fake_ws_factory() -> type[FakeWsClient]:
    return FakeWsClient


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def drain() -> Callable[[], Awaitable[None]]:
    """Let background tasks run until the loop is idle."""

    async def _drain(cycles: int = 20) -> None:
        for _ in range(cycles):
            await asyncio.sleep(0)

    return _drain


@pytest.fixture
def unreachable_transport() -> FakeTransport:
    return FakeTransport(reachable=False)
