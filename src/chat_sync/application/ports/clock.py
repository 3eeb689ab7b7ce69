"""Time source for typing expiry, optimistic timestamps and token expiry."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Clock(Protocol):
    def now(self) -> datetime:
        """Timezone-aware UTC; buffers compare these against server timestamps."""
        ...


class SystemClock:
    def now(self) -> datetime:
        return utc_now()
