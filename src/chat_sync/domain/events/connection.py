from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from chat_sync.domain.events.chat import ChatEvent
from chat_sync.domain.value_objects.enums import ConnectionReason, ConnectionState


@dataclass(frozen=True, slots=True)
class ConnectionStateChanged:
    state: ConnectionState
    previous: ConnectionState
    reason: ConnectionReason


LiveEvent = Union[ChatEvent, ConnectionStateChanged]
