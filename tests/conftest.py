"""Shared test fixtures."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import jwt
import pytest

from chat_sync.application.dto.conversation import ConversationDetail, UserBrief
from chat_sync.application.exceptions import (
    ConnectionClosedError,
    HandshakeRejectedError,
    RequestError,
    TransportError,
)
from chat_sync.domain.entities.message import Message
from chat_sync.domain.events.connection import LiveEvent
from chat_sync.domain.value_objects.enums import MessageKind, SessionEvent
from chat_sync.infrastructure.bus.broadcast import EventStream, Subscription
from chat_sync.infrastructure.ws.manager import ConnectionManager

BASE_TS = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
RELAY_BASE = "ws://relay.test/ws/chat"


def make_message(
    message_id: int | None = 1,
    *,
    conversation_id: int = 7,
    sender_id: int = 2,
    content: str = "hello",
    seconds: float = 0,
    created_at: datetime | None = None,
) -> Message:
    return Message(
        id=message_id,
        conversation_id=conversation_id,
        sender_id=sender_id,
        sender_display_name="bob",
        sender_avatar_ref=None,
        content=content,
        kind=MessageKind.TEXT,
        is_read=False,
        created_at=created_at or BASE_TS + timedelta(seconds=seconds),
    )


def make_token(sub: int = 42, *, expires_in: timedelta | None = timedelta(hours=1)) -> str:
    claims: dict[str, Any] = {"sub": str(sub)}
    if expires_in is not None:
        claims["exp"] = int((datetime.now(timezone.utc) + expires_in).timestamp())
    return jwt.encode(claims, "test-secret", algorithm="HS256")


def drain(sub: Subscription[Any]) -> list[Any]:
    items = []
    while True:
        try:
            items.append(sub.get_nowait())
        except asyncio.QueueEmpty:
            return items


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


@dataclass
class FakeCredentials:
    _token: str | None = None
    _user_id: int | None = 42
    _nickname: str | None = "alice"

    async def token(self) -> str | None:
        return self._token

    async def user_id(self) -> int | None:
        return self._user_id

    async def nickname(self) -> str | None:
        return self._nickname


_CLOSE = object()


class FakeConnection:
    """Scripted relay socket: feed() frames in, inspect sent out."""

    def __init__(self) -> None:
        self._inbox: asyncio.Queue[Any] = asyncio.Queue()
        self.sent: list[str] = []
        self.closed_with: tuple[int, str] | None = None
        self.fail_sends = False

    def feed(self, frame: str | bytes) -> None:
        self._inbox.put_nowait(frame)

    def remote_close(self, code: int = 1000, reason: str = "") -> None:
        self._inbox.put_nowait((_CLOSE, code, reason))

    def transport_error(self) -> None:
        self._inbox.put_nowait(TransportError("connection reset"))

    async def send(self, frame: str) -> None:
        if self.closed_with is not None:
            raise ConnectionClosedError(*self.closed_with)
        if self.fail_sends:
            raise TransportError("broken pipe")
        self.sent.append(frame)

    async def receive(self) -> str | bytes:
        item = await self._inbox.get()
        if isinstance(item, tuple) and item[0] is _CLOSE:
            self.closed_with = (item[1], item[2])
            raise ConnectionClosedError(item[1], item[2])
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self.closed_with is None:
            self.remote_close(code, reason)


@dataclass
class FakeTransport:
    reject_status: int | None = None
    fail: bool = False
    gate: asyncio.Event | None = None
    urls: list[str] = field(default_factory=list)
    connections: list[FakeConnection] = field(default_factory=list)

    async def open(self, url: str) -> FakeConnection:
        self.urls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if self.reject_status is not None:
            raise HandshakeRejectedError(self.reject_status)
        if self.fail:
            raise TransportError("connection refused")
        conn = FakeConnection()
        self.connections.append(conn)
        return conn

    @property
    def last(self) -> FakeConnection:
        return self.connections[-1]


@dataclass
class FakeChatApi:
    details: dict[tuple[int, int], ConversationDetail] = field(default_factory=dict)
    error: Exception | None = None
    send_error: Exception | None = None
    sent: list[tuple[int, str]] = field(default_factory=list)
    next_id: int = 1000
    send_created_at: datetime = BASE_TS
    before_send_returns: Callable[[Message], None] | None = None
    send_gate: asyncio.Event | None = None

    def put_page(
        self,
        conversation_id: int,
        messages: list[Message],
        *,
        page: int = 0,
        other_user: UserBrief | None = None,
    ) -> None:
        self.details[(conversation_id, page)] = ConversationDetail(
            id=conversation_id,
            other_user=other_user or UserBrief(id=2, username="bob", nickname="Bob"),
            messages=messages,
        )

    async def get_conversation_detail(self, conversation_id: int, page: int = 0, size: int = 50) -> ConversationDetail:
        if self.error is not None:
            raise self.error
        detail = self.details.get((conversation_id, page))
        if detail is None:
            raise RequestError("Conversation not found", status_code=404)
        return detail

    async def send_message(self, receiver_id: int, content: str, kind: MessageKind = MessageKind.TEXT) -> Message:
        if self.send_gate is not None:
            await self.send_gate.wait()
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((receiver_id, content))
        self.next_id += 1
        confirmed = make_message(
            self.next_id, conversation_id=0, sender_id=42, content=content,
            created_at=self.send_created_at,
        )
        if self.before_send_returns is not None:
            self.before_send_returns(confirmed)
        return confirmed


class FakeClock:
    def __init__(self, start: datetime = BASE_TS) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


@pytest.fixture
def credentials() -> FakeCredentials:
    return FakeCredentials(_token=make_token())


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def live_events() -> EventStream[LiveEvent]:
    return EventStream("test-live")


@pytest.fixture
def session_events() -> EventStream[SessionEvent]:
    return EventStream("test-session")


@pytest.fixture
def manager(transport, credentials, live_events, session_events) -> ConnectionManager:
    return ConnectionManager(RELAY_BASE, transport, credentials, live_events, session_events)
