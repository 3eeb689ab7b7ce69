from __future__ import annotations

from typing import Protocol

from chat_sync.application.dto.signals import OutboundSignal


class SignalSender(Protocol):
    """Outbound side of the relay connection."""

    def is_connected(self) -> bool: ...

    async def send_signal(self, signal: OutboundSignal) -> bool: ...
