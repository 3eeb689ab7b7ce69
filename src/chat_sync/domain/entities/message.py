from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from chat_sync.domain.value_objects.enums import MessageKind


@dataclass(frozen=True, slots=True)
class Message:
    id: int | None
    conversation_id: int
    sender_id: int
    sender_display_name: str | None
    sender_avatar_ref: str | None
    content: str
    kind: MessageKind
    is_read: bool
    created_at: datetime | None
    local_ref: str | None = None  # set only on optimistic copies

    @property
    def is_pending(self) -> bool:
        """True for a local optimistic copy the server has not confirmed yet."""
        return self.id is None
