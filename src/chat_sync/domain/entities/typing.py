from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class TypingEntry:
    user_id: int
    display_name: str | None
    expires_at: datetime
