from __future__ import annotations

from dataclasses import dataclass, field

from chat_sync.domain.entities.message import Message


@dataclass(frozen=True, slots=True)
class UserBrief:
    id: int
    username: str
    nickname: str | None = None
    avatar: str | None = None
    rating: float | None = None

    @property
    def display_name(self) -> str:
        return self.nickname or self.username


@dataclass(frozen=True, slots=True)
class ConversationDetail:
    id: int
    other_user: UserBrief | None
    messages: list[Message] = field(default_factory=list)
