from __future__ import annotations

from typing import Protocol

from chat_sync.application.dto.conversation import ConversationDetail
from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.enums import MessageKind


class ChatApi(Protocol):
    async def get_conversation_detail(
        self,
        conversation_id: int,
        page: int = 0,
        size: int = 50,
    ) -> ConversationDetail: ...

    async def send_message(
        self,
        receiver_id: int,
        content: str,
        kind: MessageKind = MessageKind.TEXT,
    ) -> Message:
        """Return the server-confirmed message.

        The send endpoint does not echo the conversation, so conversation_id
        is 0 on the returned message.
        """
        ...
