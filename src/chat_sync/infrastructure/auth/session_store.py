from __future__ import annotations

import logging
from dataclasses import dataclass

from chat_sync.infrastructure.auth.token_claims import subject_id
from chat_sync.infrastructure.bus.broadcast import EventStream

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    token: str | None
    user_id: int | None
    nickname: str | None


class InMemorySessionStore:
    """Implements application.ports.credentials.SessionCredentials.

    Persistent storage belongs to the host application; it pushes the current
    values here. Every change is published on ``changes`` so a consumer can
    reconnect when the credential is replaced.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        user_id: int | None = None,
        nickname: str | None = None,
    ) -> None:
        self.changes: EventStream[SessionSnapshot] = EventStream("session-changes")
        self._snapshot = SessionSnapshot(token=None, user_id=None, nickname=None)
        if token is not None:
            self.save(token, user_id=user_id, nickname=nickname)

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    def save(self, token: str, *, user_id: int | None = None, nickname: str | None = None) -> None:
        if user_id is None:
            user_id = subject_id(token)
        self._snapshot = SessionSnapshot(token=token, user_id=user_id, nickname=nickname)
        logger.info("Session credential stored (user_id=%s)", user_id)
        self.changes.publish(self._snapshot)

    def update_nickname(self, nickname: str) -> None:
        self._snapshot = SessionSnapshot(
            token=self._snapshot.token,
            user_id=self._snapshot.user_id,
            nickname=nickname,
        )
        self.changes.publish(self._snapshot)

    def clear(self) -> None:
        self._snapshot = SessionSnapshot(token=None, user_id=None, nickname=None)
        logger.info("Session credential cleared")
        self.changes.publish(self._snapshot)

    async def token(self) -> str | None:
        return self._snapshot.token

    async def user_id(self) -> int | None:
        return self._snapshot.user_id

    async def nickname(self) -> str | None:
        return self._snapshot.nickname
