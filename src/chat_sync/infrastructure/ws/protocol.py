"""Relay wire models (JSON text frames)."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from chat_sync.domain.value_objects.enums import FrameType, MessageKind


class MessagePayload(BaseModel):
    """Message body shared by NEW_MESSAGE frames and the chat REST API."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    sender_id: int = Field(alias="senderId")
    sender_nickname: str | None = Field(default=None, alias="senderNickname")
    sender_avatar: str | None = Field(default=None, alias="senderAvatar")
    content: str
    type: MessageKind
    is_read: bool | None = Field(default=None, alias="isRead")
    created_at: datetime | None = Field(default=None, alias="createdAt")


class TypingPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(alias="userId")
    nickname: str | None = None


class WsInbound(BaseModel):
    """Relay → client."""

    model_config = ConfigDict(populate_by_name=True)

    type: str  # NEW_MESSAGE | TYPING | STOP_TYPING
    conversation_id: int = Field(alias="conversationId")
    message: MessagePayload | None = None
    typing: TypingPayload | None = None


class WsOutbound(BaseModel):
    """Client → relay."""

    model_config = ConfigDict(populate_by_name=True)

    type: FrameType  # TYPING | STOP_TYPING
    target_user_id: int = Field(alias="targetUserId")
    conversation_id: int = Field(alias="conversationId")
    nickname: str | None = None

    def to_frame(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)
