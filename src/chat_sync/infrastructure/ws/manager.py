"""Relay connection manager.

Owns the single relay socket and the connection state machine::

    DISCONNECTED --connect()--> CONNECTING --handshake ok--> CONNECTED
    CONNECTING --handshake/transport error--> FAILED
    CONNECTED --normal close--> DISCONNECTED
    CONNECTED --transport error / abnormal close--> FAILED
    FAILED --connect()--> CONNECTING

Every transition is published on the live event stream. Nothing else holds the
socket; other components go through send().
"""
from __future__ import annotations

import asyncio
import logging
from urllib.parse import urlencode

from chat_sync.application.dto.signals import OutboundSignal
from chat_sync.application.exceptions import (
    ConnectionClosedError,
    HandshakeRejectedError,
    TransportError,
)
from chat_sync.application.policies.reconnect import NoReconnect, ReconnectPolicy
from chat_sync.application.ports.credentials import SessionCredentials
from chat_sync.application.ports.transport import RelayConnection, RelayTransport
from chat_sync.domain.events.connection import ConnectionStateChanged, LiveEvent
from chat_sync.domain.value_objects.enums import ConnectionReason, ConnectionState, SessionEvent
from chat_sync.infrastructure.auth.token_claims import is_expired
from chat_sync.infrastructure.bus.broadcast import EventStream
from chat_sync.infrastructure.ws.codec import decode_frame, encode_signal

logger = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000
NORMAL_CLOSE_CODES = frozenset({1000, 1001})
# The relay accepts the upgrade and then closes when the token is bad.
AUTH_CLOSE_CODES = frozenset({1003, 1008, 4001, 4401, 4403})
AUTH_REJECT_STATUSES = frozenset({401, 403})


def relay_url(relay_url_base: str, token: str, token_param: str = "token") -> str:
    sep = "&" if "?" in relay_url_base else "?"
    return f"{relay_url_base}{sep}{urlencode({token_param: token})}"


class ConnectionManager:
    def __init__(
        self,
        relay_url_base: str,
        transport: RelayTransport,
        credentials: SessionCredentials,
        events: EventStream[LiveEvent],
        session_events: EventStream[SessionEvent],
        *,
        reconnect_policy: ReconnectPolicy | None = None,
        token_param: str = "token",
    ) -> None:
        self._relay_url_base = relay_url_base
        self._transport = transport
        self._credentials = credentials
        self._events = events
        self._session_events = session_events
        self._policy = reconnect_policy or NoReconnect()
        self._token_param = token_param

        self._state = ConnectionState.DISCONNECTED
        self._connection: RelayConnection | None = None
        self._reader: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()
        self._closing = False

    @property
    def state(self) -> ConnectionState:
        return self._state

    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    async def connect(self) -> None:
        """Start a connection attempt unless one is open or in progress.

        Returns once the attempt is initiated; the outcome arrives on the
        event stream as ConnectionStateChanged.
        """
        async with self._lock:
            if self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
                logger.debug("connect() ignored, already %s", self._state)
                return

            token = await self._credentials.token()
            if not token:
                logger.warning("No session credential, staying %s", self._state)
                self._session_events.publish(SessionEvent.AUTHENTICATION_REQUIRED)
                return
            if is_expired(token):
                logger.warning("Session credential has expired, staying %s", self._state)
                self._session_events.publish(SessionEvent.SESSION_EXPIRED)
                return

            self._cancel_reconnect()
            self._set_state(ConnectionState.CONNECTING, ConnectionReason.CONNECT_REQUESTED)
            url = relay_url(self._relay_url_base, token, self._token_param)
            self._reader = asyncio.create_task(self._run(url), name="relay-reader")

    async def ensure_connected(self) -> None:
        """connect() with a fresh reconnect budget."""
        self._policy.reset()
        await self.connect()

    async def disconnect(self) -> None:
        """Close with a normal-closure code. Safe to call in any state."""
        async with self._lock:
            self._cancel_reconnect()
            self._closing = True
            try:
                connection, self._connection = self._connection, None
                if connection is not None:
                    try:
                        await connection.close(NORMAL_CLOSURE, "User disconnected")
                    except TransportError as exc:
                        logger.debug("Error while closing relay socket: %s", exc.detail)

                reader, self._reader = self._reader, None
                if reader is not None and not reader.done():
                    reader.cancel()
                    try:
                        await reader
                    except asyncio.CancelledError:
                        pass
            finally:
                self._closing = False
            self._set_state(ConnectionState.DISCONNECTED, ConnectionReason.LOCAL_CLOSE)

    async def send(self, frame: str) -> bool:
        """Send one text frame. Returns False instead of raising when not connected."""
        connection = self._connection
        if self._state != ConnectionState.CONNECTED or connection is None:
            return False
        try:
            await connection.send(frame)
        except TransportError as exc:
            logger.warning("Failed to send frame to relay: %s", exc.detail)
            return False
        return True

    async def send_signal(self, signal: OutboundSignal) -> bool:
        return await self.send(encode_signal(signal))

    async def _run(self, url: str) -> None:
        try:
            connection = await self._transport.open(url)
        except HandshakeRejectedError as exc:
            if exc.status_code in AUTH_REJECT_STATUSES:
                logger.warning("Relay rejected the session credential (HTTP %d)", exc.status_code)
                self._reject_auth()
            else:
                logger.warning("Relay refused the handshake (HTTP %d)", exc.status_code)
                self._fail(ConnectionReason.HANDSHAKE_FAILED)
            return
        except TransportError as exc:
            logger.warning("Relay handshake failed: %s", exc.detail)
            self._fail(ConnectionReason.HANDSHAKE_FAILED)
            return

        self._connection = connection
        self._policy.reset()
        self._set_state(ConnectionState.CONNECTED, ConnectionReason.HANDSHAKE_OK)

        try:
            await self._read_loop(connection)
        except ConnectionClosedError as exc:
            self._connection = None
            if not self._closing:
                self._on_closed(exc.code, exc.reason)
        except TransportError as exc:
            self._connection = None
            if not self._closing:
                logger.error("Relay transport error: %s", exc.detail)
                self._fail(ConnectionReason.TRANSPORT_ERROR)
        except Exception:
            logger.exception("Relay reader crashed")
            self._connection = None
            try:
                await connection.close(1011, "client error")
            except TransportError:
                pass
            self._fail(ConnectionReason.TRANSPORT_ERROR)

    async def _read_loop(self, connection: RelayConnection) -> None:
        # One frame at a time, in arrival order.
        while True:
            raw = await connection.receive()
            event = decode_frame(raw)
            if event is None:
                continue
            self._events.publish(event)

    def _on_closed(self, code: int, reason: str) -> None:
        if code in NORMAL_CLOSE_CODES:
            logger.info("Relay closed the connection (%d %s)", code, reason)
            self._set_state(ConnectionState.DISCONNECTED, ConnectionReason.REMOTE_CLOSED)
        elif code in AUTH_CLOSE_CODES:
            logger.warning("Relay closed the connection for auth reasons (%d %s)", code, reason)
            self._reject_auth()
        else:
            logger.warning("Relay connection lost (%d %s)", code, reason)
            self._fail(ConnectionReason.TRANSPORT_ERROR)

    def _reject_auth(self) -> None:
        self._set_state(ConnectionState.FAILED, ConnectionReason.AUTH_REJECTED)
        self._session_events.publish(SessionEvent.SESSION_EXPIRED)

    def _fail(self, reason: ConnectionReason) -> None:
        self._set_state(ConnectionState.FAILED, reason)
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        """Single decision point for automatic reconnection."""
        delay = self._policy.next_delay()
        if delay is None:
            logger.debug("No automatic reconnect, waiting for connect()")
            return
        logger.info("Reconnecting to relay in %.1fs", delay)
        self._reconnect_task = asyncio.create_task(
            self._reconnect_after(delay), name="relay-reconnect",
        )

    async def _reconnect_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._reconnect_task = None
        await self.connect()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            self._reconnect_task = None

    def _set_state(self, state: ConnectionState, reason: ConnectionReason) -> None:
        if state == self._state:
            return
        previous, self._state = self._state, state
        logger.info("Relay connection %s -> %s (%s)", previous, state, reason)
        self._events.publish(
            ConnectionStateChanged(state=state, previous=previous, reason=reason)
        )
