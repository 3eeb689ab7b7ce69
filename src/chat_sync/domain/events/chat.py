from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from chat_sync.domain.entities.message import Message


@dataclass(frozen=True, slots=True)
class NewMessage:
    conversation_id: int
    message: Message


@dataclass(frozen=True, slots=True)
class TypingStarted:
    conversation_id: int
    user_id: int
    display_name: str | None


@dataclass(frozen=True, slots=True)
class TypingStopped:
    conversation_id: int
    user_id: int


ChatEvent = Union[NewMessage, TypingStarted, TypingStopped]
