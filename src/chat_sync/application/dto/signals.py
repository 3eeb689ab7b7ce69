from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True, slots=True)
class TypingSignal:
    conversation_id: int
    target_user_id: int
    nickname: str = ""


@dataclass(frozen=True, slots=True)
class StopTypingSignal:
    conversation_id: int
    target_user_id: int


OutboundSignal = Union[TypingSignal, StopTypingSignal]
