"""Merges paged history (pull) and live NEW_MESSAGE events (push) per conversation."""
from __future__ import annotations

import dataclasses
import logging
import uuid
from datetime import timedelta

from chat_sync.application.dto.conversation import UserBrief
from chat_sync.application.policies.optimistic_match import find_optimistic_match
from chat_sync.application.ports.chat_api import ChatApi
from chat_sync.application.ports.clock import Clock, SystemClock
from chat_sync.domain.entities.conversation_buffer import EPOCH, ConversationBuffer, sort_key
from chat_sync.domain.entities.message import Message
from chat_sync.domain.events.chat import NewMessage, TypingStarted, TypingStopped
from chat_sync.domain.events.connection import LiveEvent
from chat_sync.domain.value_objects.enums import MessageKind
from chat_sync.services.typing_roster import TypingRoster

logger = logging.getLogger(__name__)


class HistoryReconciler:
    def __init__(
        self,
        api: ChatApi,
        roster: TypingRoster,
        *,
        clock: Clock | None = None,
        match_window: timedelta = timedelta(seconds=60),
    ) -> None:
        self._api = api
        self._roster = roster
        self._clock = clock or SystemClock()
        self._match_window = match_window
        self._buffers: dict[int, ConversationBuffer] = {}
        self._other_users: dict[int, UserBrief | None] = {}

    def is_loaded(self, conversation_id: int) -> bool:
        return conversation_id in self._buffers

    def snapshot(self, conversation_id: int) -> tuple[Message, ...]:
        buffer = self._buffers.get(conversation_id)
        return buffer.snapshot() if buffer else ()

    def other_user(self, conversation_id: int) -> UserBrief | None:
        return self._other_users.get(conversation_id)

    def unload(self, conversation_id: int) -> None:
        self._buffers.pop(conversation_id, None)
        self._other_users.pop(conversation_id, None)
        self._roster.clear(conversation_id)

    async def load_page(self, conversation_id: int, page: int = 0, page_size: int = 50) -> list[Message]:
        """Fetch one page and merge it. On failure the error propagates and
        the buffer is left exactly as it was."""
        detail = await self._api.get_conversation_detail(conversation_id, page, page_size)

        fetched = [
            m if m.created_at is not None else dataclasses.replace(m, created_at=EPOCH)
            for m in detail.messages
        ]
        fetched.sort(key=sort_key)

        buffer = self._buffers.setdefault(conversation_id, ConversationBuffer(conversation_id))
        if detail.other_user is not None or conversation_id not in self._other_users:
            self._other_users[conversation_id] = detail.other_user
        for message in fetched:
            self._merge_confirmed(buffer, message)

        logger.debug(
            "Loaded page %d of conversation %d (%d messages, buffer=%d)",
            page, conversation_id, len(fetched), len(buffer),
        )
        return fetched

    def ingest_live(self, event: LiveEvent) -> bool:
        """Apply one live event. Returns True when a message buffer changed."""
        if isinstance(event, (TypingStarted, TypingStopped)):
            self._roster.apply(event)
            return False
        if not isinstance(event, NewMessage):
            return False

        buffer = self._buffers.get(event.conversation_id)
        if buffer is None:
            # Not on screen; the next history pull will include it.
            return False

        message = event.message
        if message.created_at is None:
            message = dataclasses.replace(message, created_at=self._clock.now())
        self._merge_confirmed(buffer, message)
        return True

    def add_optimistic(
        self,
        conversation_id: int,
        sender_id: int,
        content: str,
        *,
        kind: MessageKind = MessageKind.TEXT,
        sender_display_name: str | None = None,
    ) -> Message:
        message = Message(
            id=None,
            conversation_id=conversation_id,
            sender_id=sender_id,
            sender_display_name=sender_display_name,
            sender_avatar_ref=None,
            content=content,
            kind=kind,
            is_read=False,
            created_at=self._clock.now(),
            local_ref=uuid.uuid4().hex,
        )
        buffer = self._buffers.setdefault(conversation_id, ConversationBuffer(conversation_id))
        buffer.upsert(message)
        return message

    def confirm_optimistic(self, conversation_id: int, local_ref: str, confirmed: Message) -> None:
        """Swap the optimistic copy for the server's. Also fine if a live push
        already did the swap."""
        buffer = self._buffers.setdefault(conversation_id, ConversationBuffer(conversation_id))
        buffer.remove_local(local_ref)
        if confirmed.created_at is None:
            confirmed = dataclasses.replace(confirmed, created_at=self._clock.now())
        buffer.upsert(confirmed)

    def discard_optimistic(self, conversation_id: int, local_ref: str) -> None:
        buffer = self._buffers.get(conversation_id)
        if buffer is not None:
            buffer.remove_local(local_ref)

    def _merge_confirmed(self, buffer: ConversationBuffer, message: Message) -> None:
        if message.id not in buffer:
            match = find_optimistic_match(buffer.pending(), message, self._match_window)
            if match is not None and match.local_ref is not None:
                buffer.remove_local(match.local_ref)
                logger.debug("Message %s confirmed optimistic copy %s", message.id, match.local_ref)
        buffer.upsert(message)
