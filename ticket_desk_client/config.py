"""Connection defaults and configuration for the Ticket Desk client."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import TicketDeskEndpointError
from .transport import TransportSession, build_ws_url, check_endpoint

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8080
DEFAULT_PATH = "/ws"
DEFAULT_ENDPOINT = build_ws_url(DEFAULT_HOST, DEFAULT_PORT, DEFAULT_PATH)

DEFAULT_PING_INTERVAL = 20
DEFAULT_CONNECT_TIMEOUT = 15.0

ENV_PREFIX = "TICKET_DESK"


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings for one client session."""

    endpoint: str = DEFAULT_ENDPOINT
    ping_interval: int | None = DEFAULT_PING_INTERVAL
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT

    def __post_init__(self) -> None:
        try:
            check_endpoint(self.endpoint)
        except TicketDeskEndpointError as err:
            raise ValueError(str(err)) from err
        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")
        if self.ping_interval is not None and self.ping_interval <= 0:
            raise ValueError("ping_interval must be positive or None")

    def create_transport(self) -> TransportSession:
        """Build a fresh transport session using these settings."""
        return TransportSession(
            ping_interval=self.ping_interval,
            connect_timeout=self.connect_timeout,
        )
