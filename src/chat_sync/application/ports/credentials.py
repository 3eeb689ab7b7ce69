from __future__ import annotations

from typing import Protocol


class SessionCredentials(Protocol):
    """Read side of the session store. Values may change between calls."""

    async def token(self) -> str | None: ...

    async def user_id(self) -> int | None: ...

    async def nickname(self) -> str | None: ...
