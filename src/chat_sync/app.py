from __future__ import annotations

import asyncio
import dataclasses
import logging
from datetime import timedelta
from types import TracebackType
from typing import Self

from chat_sync.application.dto.conversation import UserBrief
from chat_sync.application.policies.reconnect import build_policy
from chat_sync.application.ports.chat_api import ChatApi
from chat_sync.application.ports.clock import Clock, SystemClock
from chat_sync.application.ports.credentials import SessionCredentials
from chat_sync.application.ports.transport import RelayTransport
from chat_sync.config import Settings, settings as default_settings
from chat_sync.domain.entities.message import Message
from chat_sync.domain.entities.typing import TypingEntry
from chat_sync.domain.events.connection import LiveEvent
from chat_sync.domain.value_objects.enums import ConnectionState, SessionEvent
from chat_sync.infrastructure.bus.broadcast import EventStream, Subscription
from chat_sync.infrastructure.http.chat_api import HttpxChatApi
from chat_sync.infrastructure.ws.manager import ConnectionManager
from chat_sync.infrastructure.ws.transport import WebsocketsTransport
from chat_sync.services.history_reconciler import HistoryReconciler
from chat_sync.services.typing_emitter import TypingSignalEmitter
from chat_sync.services.typing_roster import TypingRoster

logger = logging.getLogger(__name__)


class ChatClient:
    """Process-wide chat sync facade.

    One relay connection shared by every open conversation view. Views
    subscribe with events() and render messages(); closing a view never closes
    the connection.
    """

    def __init__(
        self,
        *,
        manager: ConnectionManager,
        events: EventStream[LiveEvent],
        session_events: EventStream[SessionEvent],
        reconciler: HistoryReconciler,
        roster: TypingRoster,
        emitter: TypingSignalEmitter,
        api: ChatApi,
        credentials: SessionCredentials,
        page_size: int = 50,
    ) -> None:
        self._manager = manager
        self._events = events
        self._session_events = session_events
        self._reconciler = reconciler
        self._roster = roster
        self._emitter = emitter
        self._api = api
        self._credentials = credentials
        self._page_size = page_size
        self._pump: asyncio.Task[None] | None = None
        self._pump_sub: Subscription[LiveEvent] | None = None

    async def start(self) -> None:
        if self._pump is not None:
            return
        # Unbounded so reconciliation never loses a frame to backpressure.
        self._pump_sub = self._events.subscribe(max_queue_size=0)
        self._pump = asyncio.create_task(self._ingest(self._pump_sub), name="chat-reconcile")
        logger.info("Chat client started")

    async def aclose(self) -> None:
        await self._manager.disconnect()
        if self._pump_sub is not None:
            self._pump_sub.close()
        if self._pump is not None:
            try:
                await self._pump
            except asyncio.CancelledError:
                pass
        self._pump = None
        self._pump_sub = None
        aclose = getattr(self._api, "aclose", None)
        if aclose is not None:
            await aclose()
        logger.info("Chat client closed")

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # --- connection ---

    @property
    def state(self) -> ConnectionState:
        return self._manager.state

    def is_connected(self) -> bool:
        return self._manager.is_connected()

    async def connect(self) -> None:
        await self._manager.connect()

    async def ensure_connected(self) -> None:
        await self._manager.ensure_connected()

    async def disconnect(self) -> None:
        await self._manager.disconnect()

    def events(self, max_queue_size: int | None = None) -> Subscription[LiveEvent]:
        return self._events.subscribe(max_queue_size)

    def session_events(self) -> Subscription[SessionEvent]:
        return self._session_events.subscribe()

    # --- typing ---

    async def notify_typing(self, conversation_id: int, target_user_id: int) -> bool:
        return await self._emitter.notify_typing(conversation_id, target_user_id)

    async def notify_stop_typing(self, conversation_id: int, target_user_id: int) -> bool:
        return await self._emitter.notify_stop_typing(conversation_id, target_user_id)

    def typing(self, conversation_id: int) -> list[TypingEntry]:
        return self._roster.active(conversation_id)

    # --- history ---

    async def load_page(self, conversation_id: int, page: int = 0, page_size: int | None = None) -> list[Message]:
        return await self._reconciler.load_page(conversation_id, page, page_size or self._page_size)

    def messages(self, conversation_id: int) -> tuple[Message, ...]:
        return self._reconciler.snapshot(conversation_id)

    def other_user(self, conversation_id: int) -> UserBrief | None:
        return self._reconciler.other_user(conversation_id)

    def close_conversation(self, conversation_id: int) -> None:
        self._reconciler.unload(conversation_id)

    async def send_message(self, conversation_id: int, receiver_id: int, content: str) -> Message:
        """Show an optimistic copy at once, then swap in the server's copy.

        The optimistic copy is removed again if the send fails or is cancelled.
        """
        sender_id = await self._credentials.user_id() or 0
        nickname = await self._credentials.nickname()
        pending = self._reconciler.add_optimistic(
            conversation_id, sender_id, content, sender_display_name=nickname,
        )
        assert pending.local_ref is not None
        try:
            confirmed = await self._api.send_message(receiver_id, content)
        except BaseException:
            self._reconciler.discard_optimistic(conversation_id, pending.local_ref)
            raise
        confirmed = dataclasses.replace(confirmed, conversation_id=conversation_id)
        self._reconciler.confirm_optimistic(conversation_id, pending.local_ref, confirmed)
        return confirmed

    async def _ingest(self, sub: Subscription[LiveEvent]) -> None:
        async for event in sub:
            try:
                self._reconciler.ingest_live(event)
            except Exception:
                logger.exception("Failed to reconcile %s", type(event).__name__)


def create_client(
    credentials: SessionCredentials,
    *,
    config: Settings | None = None,
    transport: RelayTransport | None = None,
    api: ChatApi | None = None,
    clock: Clock | None = None,
) -> ChatClient:
    cfg = config or default_settings
    clock = clock or SystemClock()

    events: EventStream[LiveEvent] = EventStream("live-events", cfg.SUBSCRIBER_QUEUE_SIZE)
    session_events: EventStream[SessionEvent] = EventStream("session-events", cfg.SUBSCRIBER_QUEUE_SIZE)

    manager = ConnectionManager(
        cfg.relay_url_base,
        transport or WebsocketsTransport(
            open_timeout=cfg.WS_OPEN_TIMEOUT,
            ping_interval=cfg.WS_PING_INTERVAL,
        ),
        credentials,
        events,
        session_events,
        reconnect_policy=build_policy(
            cfg.RECONNECT_MODE,
            base_delay=cfg.RECONNECT_BASE_DELAY,
            max_delay=cfg.RECONNECT_MAX_DELAY,
            max_attempts=cfg.RECONNECT_MAX_ATTEMPTS,
        ),
        token_param=cfg.WS_TOKEN_PARAM,
    )
    api = api or HttpxChatApi.from_base_url(
        cfg.API_BASE_URL, credentials, session_events, timeout=cfg.HTTP_TIMEOUT,
    )
    roster = TypingRoster(ttl=timedelta(seconds=cfg.TYPING_EXPIRY_SECONDS), clock=clock)
    reconciler = HistoryReconciler(
        api,
        roster,
        clock=clock,
        match_window=timedelta(seconds=cfg.OPTIMISTIC_MATCH_WINDOW_SECONDS),
    )
    return ChatClient(
        manager=manager,
        events=events,
        session_events=session_events,
        reconciler=reconciler,
        roster=roster,
        emitter=TypingSignalEmitter(manager, credentials),
        api=api,
        credentials=credentials,
        page_size=cfg.HISTORY_PAGE_SIZE,
    )
