from __future__ import annotations

import logging
from datetime import timedelta

from chat_sync.application.ports.clock import Clock, SystemClock
from chat_sync.domain.entities.typing import TypingEntry
from chat_sync.domain.events.chat import ChatEvent, TypingStarted, TypingStopped

logger = logging.getLogger(__name__)


class TypingRoster:
    """Who is typing in each conversation.

    Entries expire after ``ttl`` so a lost STOP_TYPING frame cannot leave an
    indicator on screen forever. A repeated TYPING refreshes the expiry.
    Expired entries are dropped on every typing event, not only when read.
    """

    def __init__(self, ttl: timedelta = timedelta(seconds=6), clock: Clock | None = None) -> None:
        self._ttl = ttl
        self._clock = clock or SystemClock()
        self._rosters: dict[int, dict[int, TypingEntry]] = {}

    def apply(self, event: ChatEvent) -> bool:
        """Update from a typing event. Returns False for any other event."""
        if not isinstance(event, (TypingStarted, TypingStopped)):
            return False
        for conversation_id in list(self._rosters):
            self._purge(conversation_id)
        if isinstance(event, TypingStarted):
            self._rosters.setdefault(event.conversation_id, {})[event.user_id] = TypingEntry(
                user_id=event.user_id,
                display_name=event.display_name,
                expires_at=self._clock.now() + self._ttl,
            )
            return True
        roster = self._rosters.get(event.conversation_id)
        if roster is not None:
            roster.pop(event.user_id, None)
            if not roster:
                del self._rosters[event.conversation_id]
        return True

    def active(self, conversation_id: int) -> list[TypingEntry]:
        self._purge(conversation_id)
        return list(self._rosters.get(conversation_id, {}).values())

    def conversations(self) -> list[int]:
        """Conversations with at least one entry, expired or not."""
        return sorted(self._rosters)

    def clear(self, conversation_id: int) -> None:
        self._rosters.pop(conversation_id, None)

    def _purge(self, conversation_id: int) -> None:
        roster = self._rosters.get(conversation_id)
        if not roster:
            return
        now = self._clock.now()
        expired = [uid for uid, entry in roster.items() if entry.expires_at <= now]
        for uid in expired:
            del roster[uid]
            logger.debug("Typing indicator for user %d in conversation %d expired", uid, conversation_id)
        if not roster:
            del self._rosters[conversation_id]
