"""Tests for TransportSession lifecycle and delivery."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

import pytest

from ticket_desk_client.errors import (
    NotConnectedError,
    TicketDeskClientError,
    TicketDeskConnectionError,
    TicketDeskEndpointError,
    TicketDeskTimeout,
)
from ticket_desk_client.transport import TransportSession, TransportState

ENDPOINT = "ws://localhost:8080/ws"
WS_CLIENT_PATH = "ticket_desk_client.transport.session.TicketDeskWsClient"


def _recording_session() -> tuple[TransportSession, list[tuple]]:
    """Create a session whose callbacks append to an event log."""
    events: list[tuple] = []
    session = TransportSession()
    session.on_opened(lambda: events.append(("opened",)))
    session.on_message(lambda raw: events.append(("message", raw)))
    session.on_closed(lambda: events.append(("closed",)))
    session.on_error(lambda err: events.append(("error", err)))
    return session, events


class TestTransportSessionOpen:
    """Tests for TransportSession.open()."""

    def test_initial_state(self):
        """Test a new session is idle with no endpoint."""
        session = TransportSession()
        assert session.state is TransportState.IDLE
        assert session.endpoint is None

    @pytest.mark.asyncio
    async def test_open_success(self, fake_ws):
        """Test opening emits opened and moves to OPEN."""
        session, events = _recording_session()

        with patch(WS_CLIENT_PATH, return_value=fake_ws):
            result = await session.open(ENDPOINT)

        assert result is True
        assert session.state is TransportState.OPEN
        assert session.endpoint == ENDPOINT
        assert events == [("opened",)]
        fake_ws.connect.assert_awaited_once_with(
            ENDPOINT, ping_interval=20, timeout=15.0
        )
        await session.close()

    @pytest.mark.asyncio
    async def test_open_custom_params(self, fake_ws):
        """Test keepalive and timeout settings reach the websocket client."""
        session = TransportSession(ping_interval=None, connect_timeout=3.0)

        with patch(WS_CLIENT_PATH, return_value=fake_ws):
            await session.open(ENDPOINT)

        fake_ws.connect.assert_awaited_once_with(
            ENDPOINT, ping_interval=None, timeout=3.0
        )
        await session.close()

    @pytest.mark.asyncio
    async def test_open_unreachable_reports_error_then_closed(self, fake_ws_factory):
        """Test connection failure is reported through callbacks, not raised."""
        fake_ws = fake_ws_factory(connect_error=TicketDeskConnectionError("refused"))
        session, events = _recording_session()

        with patch(WS_CLIENT_PATH, return_value=fake_ws):
            result = await session.open(ENDPOINT)

        assert result is False
        assert session.state is TransportState.CLOSED
        assert [name for name, *_ in events] == ["error", "closed"]
        assert isinstance(events[0][1], TicketDeskConnectionError)

    @pytest.mark.asyncio
    async def test_open_timeout_is_a_connection_error(self, fake_ws_factory):
        """Test timeouts arrive as TicketDeskConnectionError subclasses."""
        fake_ws = fake_ws_factory(connect_error=TicketDeskTimeout("timed out"))
        session, events = _recording_session()

        with patch(WS_CLIENT_PATH, return_value=fake_ws):
            await session.open(ENDPOINT)

        assert isinstance(events[0][1], TicketDeskConnectionError)
        assert events[-1] == ("closed",)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "endpoint", ["ws://localhost:99999/ws", "ws://localhost:port/ws", "ftp://desk/ws"]
    )
    async def test_open_invalid_endpoint_reports_error_then_closed(self, endpoint):
        """Test an undialable endpoint ends Connecting -> Closed without raising."""
        session, events = _recording_session()

        result = await session.open(endpoint)

        assert result is False
        assert session.state is TransportState.CLOSED
        assert [name for name, *_ in events] == ["error", "closed"]
        assert isinstance(events[0][1], TicketDeskEndpointError)

    @pytest.mark.asyncio
    async def test_reopen_after_close_raises(self, fake_ws):
        """Test closing is terminal."""
        session = TransportSession()

        with patch(WS_CLIENT_PATH, return_value=fake_ws):
            await session.open(ENDPOINT)
            await session.close()

            with pytest.raises(TicketDeskClientError, match="new session"):
                await session.open(ENDPOINT)


class TestTransportSessionSend:
    """Tests for TransportSession.send()."""

    def test_send_before_open_raises(self):
        """Test sending while idle is rejected."""
        session = TransportSession()
        with pytest.raises(NotConnectedError):
            session.send("hello")

    @pytest.mark.asyncio
    async def test_send_writes_frames_in_order(self, fake_ws, drain):
        """Test queued frames are written in send order."""
        session = TransportSession()

        with patch(WS_CLIENT_PATH, return_value=fake_ws):
            await session.open(ENDPOINT)

        session.send("first")
        session.send("second")
        await drain()

        assert fake_ws.sent == ["first", "second"]
        await session.close()

    @pytest.mark.asyncio
    async def test_send_from_opened_callback_is_first_frame(self, fake_ws, drain):
        """Test a frame sent from the opened callback precedes later sends."""
        session = TransportSession()
        session.on_opened(lambda: session.send("init"))

        with patch(WS_CLIENT_PATH, return_value=fake_ws):
            await session.open(ENDPOINT)

        session.send("next")
        await drain()

        assert fake_ws.sent == ["init", "next"]
        await session.close()

    @pytest.mark.asyncio
    async def test_send_after_close_raises(self, fake_ws):
        """Test sending after close is rejected and nothing is written."""
        session = TransportSession()

        with patch(WS_CLIENT_PATH, return_value=fake_ws):
            await session.open(ENDPOINT)
        await session.close()

        with pytest.raises(NotConnectedError):
            session.send("late")
        assert fake_ws.sent == []

    @pytest.mark.asyncio
    async def test_send_failure_reports_error_and_closes(self, fake_ws, drain):
        """Test a failing write surfaces via callbacks and ends the session."""
        session, events = _recording_session()
        fake_ws.send_error = TicketDeskConnectionError("WebSocket send failed")

        with patch(WS_CLIENT_PATH, return_value=fake_ws):
            await session.open(ENDPOINT)

        session.send("doomed")
        await drain()

        assert [name for name, *_ in events] == ["opened", "error", "closed"]
        assert session.state is TransportState.CLOSED


class TestTransportSessionReceive:
    """Tests for inbound frame delivery."""

    @pytest.mark.asyncio
    async def test_messages_delivered_in_order(self, fake_ws, drain):
        """Test text frames reach the message callback in arrival order."""
        session, events = _recording_session()

        with patch(WS_CLIENT_PATH, return_value=fake_ws):
            await session.open(ENDPOINT)

        fake_ws.push_text("one")
        fake_ws.push_text("two")
        await drain()

        assert events == [("opened",), ("message", "one"), ("message", "two")]
        await session.close()

    @pytest.mark.asyncio
    async def test_handler_exception_does_not_stop_delivery(self, fake_ws, drain):
        """Test a crashing message callback is contained."""
        session = TransportSession()
        handler = MagicMock(side_effect=[RuntimeError("boom"), None])
        session.on_message(handler)

        with patch(WS_CLIENT_PATH, return_value=fake_ws):
            await session.open(ENDPOINT)

        fake_ws.push_text("one")
        fake_ws.push_text("two")
        await drain()

        assert handler.call_count == 2
        assert session.state is TransportState.OPEN
        await session.close()

    @pytest.mark.asyncio
    async def test_remote_close(self, fake_ws, drain):
        """Test a server close ends the session with one closed event."""
        session, events = _recording_session()

        with patch(WS_CLIENT_PATH, return_value=fake_ws):
            await session.open(ENDPOINT)

        fake_ws.push_closed()
        await drain()

        assert session.state is TransportState.CLOSED
        assert events == [("opened",), ("closed",)]
        fake_ws.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_error_frame_reports_error_then_closes(self, fake_ws, drain):
        """Test an error frame is reported before the session closes."""
        session, events = _recording_session()

        with patch(WS_CLIENT_PATH, return_value=fake_ws):
            await session.open(ENDPOINT)

        fake_ws.push_error()
        await drain()

        assert [name for name, *_ in events] == ["opened", "error", "closed"]
        assert isinstance(events[1][1], TicketDeskConnectionError)


class TestTransportSessionClose:
    """Tests for TransportSession.close()."""

    @pytest.mark.asyncio
    async def test_close_flushes_queued_frames(self, fake_ws):
        """Test frames sent just before close still reach the socket."""
        session = TransportSession()

        with patch(WS_CLIENT_PATH, return_value=fake_ws):
            await session.open(ENDPOINT)

        session.send("assign")
        session.send("abandon")
        await session.close()

        assert fake_ws.sent == ["assign", "abandon"]
        assert session.state is TransportState.CLOSED

    @pytest.mark.asyncio
    async def test_close_flush_is_bounded(self, fake_ws):
        """Test a stuck write does not hold close past the flush timeout."""
        session = TransportSession(flush_timeout=0.05)
        closed = MagicMock()
        session.on_closed(closed)
        stuck = asyncio.Event()

        async def blocked_send(data: str) -> None:
            await stuck.wait()

        fake_ws.send_text = blocked_send

        with patch(WS_CLIENT_PATH, return_value=fake_ws):
            await session.open(ENDPOINT)

        session.send("first")
        session.send("second")
        await asyncio.wait_for(session.close(), timeout=1.0)

        closed.assert_called_once_with()
        assert session.state is TransportState.CLOSED

    @pytest.mark.asyncio
    async def test_close_twice_emits_closed_once(self, fake_ws):
        """Test close is idempotent."""
        session = TransportSession()
        closed = MagicMock()
        session.on_closed(closed)

        with patch(WS_CLIENT_PATH, return_value=fake_ws):
            await session.open(ENDPOINT)

        await session.close()
        await session.close()

        closed.assert_called_once_with()
        fake_ws.close.assert_awaited_once()
        assert session.state is TransportState.CLOSED

    @pytest.mark.asyncio
    async def test_close_after_remote_close(self, fake_ws, drain):
        """Test closing after the server closed does not emit closed again."""
        session = TransportSession()
        closed = MagicMock()
        session.on_closed(closed)

        with patch(WS_CLIENT_PATH, return_value=fake_ws):
            await session.open(ENDPOINT)

        fake_ws.push_closed()
        await drain()
        await session.close()

        closed.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_close_idle_session(self):
        """Test closing a session that never opened."""
        session = TransportSession()
        closed = MagicMock()
        session.on_closed(closed)

        await session.close()

        closed.assert_called_once_with()
        assert session.state is TransportState.CLOSED

    @pytest.mark.asyncio
    async def test_last_registration_wins(self, fake_ws):
        """Test only the most recently registered callback is invoked."""
        session = TransportSession()
        first = MagicMock()
        second = MagicMock()
        session.on_closed(first)
        session.on_closed(second)

        await session.close()

        first.assert_not_called()
        second.assert_called_once_with()
