"""`websockets` adapter for the relay transport port."""
from __future__ import annotations

import logging

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidStatus, WebSocketException

from chat_sync.application.exceptions import (
    ConnectionClosedError,
    HandshakeRejectedError,
    TransportError,
)

logger = logging.getLogger(__name__)

ABNORMAL_CLOSURE = 1006


def _closed_error(exc: ConnectionClosed) -> ConnectionClosedError:
    if exc.rcvd is not None:
        return ConnectionClosedError(exc.rcvd.code, exc.rcvd.reason)
    return ConnectionClosedError(ABNORMAL_CLOSURE, "no close frame received")


class WebsocketsConnection:
    """Implements application.ports.transport.RelayConnection."""

    def __init__(self, ws: ClientConnection) -> None:
        self._ws = ws

    async def send(self, frame: str) -> None:
        try:
            await self._ws.send(frame)
        except ConnectionClosed as exc:
            raise _closed_error(exc) from exc
        except (WebSocketException, OSError) as exc:
            raise TransportError(str(exc)) from exc

    async def receive(self) -> str | bytes:
        try:
            return await self._ws.recv()
        except ConnectionClosed as exc:
            raise _closed_error(exc) from exc
        except (WebSocketException, OSError) as exc:
            raise TransportError(str(exc)) from exc

    async def close(self, code: int = 1000, reason: str = "") -> None:
        try:
            await self._ws.close(code, reason)
        except (WebSocketException, OSError) as exc:
            raise TransportError(str(exc)) from exc


class WebsocketsTransport:
    """Implements application.ports.transport.RelayTransport."""

    def __init__(
        self,
        *,
        open_timeout: float = 10.0,
        ping_interval: float | None = 20.0,
    ) -> None:
        self._open_timeout = open_timeout
        self._ping_interval = ping_interval

    async def open(self, url: str) -> WebsocketsConnection:
        try:
            ws = await connect(
                url,
                open_timeout=self._open_timeout,
                ping_interval=self._ping_interval,
            )
        except InvalidStatus as exc:
            raise HandshakeRejectedError(exc.response.status_code) from exc
        except (WebSocketException, OSError, TimeoutError) as exc:
            raise TransportError(f"Relay handshake failed: {exc}") from exc
        logger.debug("Relay socket opened")
        return WebsocketsConnection(ws)
