"""Ordered, id-unique message sequence for one conversation."""
from __future__ import annotations

import bisect
from datetime import datetime, timezone

from chat_sync.domain.entities.message import Message

EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def sort_key(message: Message) -> datetime:
    return message.created_at or EPOCH


class ConversationBuffer:
    """Messages kept non-decreasing by created_at, at most one entry per server id."""

    def __init__(self, conversation_id: int) -> None:
        self.conversation_id = conversation_id
        self._messages: list[Message] = []

    def __len__(self) -> int:
        return len(self._messages)

    def __contains__(self, message_id: object) -> bool:
        return message_id is not None and any(m.id == message_id for m in self._messages)

    def snapshot(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def pending(self) -> list[Message]:
        return [m for m in self._messages if m.is_pending]

    def upsert(self, message: Message) -> None:
        """Insert by created_at; an entry with the same server id is replaced."""
        if message.id is not None:
            self._remove_where(lambda m: m.id == message.id)
        self._insert(message)

    def remove_local(self, local_ref: str) -> Message | None:
        removed = self._remove_where(lambda m: m.is_pending and m.local_ref == local_ref)
        return removed[0] if removed else None

    def _insert(self, message: Message) -> None:
        index = bisect.bisect_right(self._messages, sort_key(message), key=sort_key)
        self._messages.insert(index, message)

    def _remove_where(self, predicate) -> list[Message]:
        removed = [m for m in self._messages if predicate(m)]
        if removed:
            self._messages = [m for m in self._messages if not predicate(m)]
        return removed
