from __future__ import annotations

import logging

from chat_sync.application.dto.signals import OutboundSignal, StopTypingSignal, TypingSignal
from chat_sync.application.ports.credentials import SessionCredentials
from chat_sync.application.ports.signal_sender import SignalSender

logger = logging.getLogger(__name__)


class TypingSignalEmitter:
    """Best-effort typing indicators. Never queued, retried or debounced."""

    def __init__(self, sender: SignalSender, credentials: SessionCredentials) -> None:
        self._sender = sender
        self._credentials = credentials

    async def notify_typing(
        self,
        conversation_id: int,
        target_user_id: int,
        nickname: str | None = None,
    ) -> bool:
        if nickname is None:
            nickname = await self._credentials.nickname()
        return await self._emit(
            TypingSignal(
                conversation_id=conversation_id,
                target_user_id=target_user_id,
                nickname=nickname or "",
            )
        )

    async def notify_stop_typing(self, conversation_id: int, target_user_id: int) -> bool:
        return await self._emit(
            StopTypingSignal(conversation_id=conversation_id, target_user_id=target_user_id)
        )

    async def _emit(self, signal: OutboundSignal) -> bool:
        if not self._sender.is_connected():
            logger.debug("Not connected, dropping %s", type(signal).__name__)
            return False
        return await self._sender.send_signal(signal)
