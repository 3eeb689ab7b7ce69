"""Chat REST API response models."""
from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from chat_sync.infrastructure.ws.protocol import MessagePayload

T = TypeVar("T")


class ApiEnvelope(BaseModel, Generic[T]):
    success: bool
    message: str | None = None
    data: T | None = None


class UserBriefPayload(BaseModel):
    id: int
    username: str = ""
    nickname: str | None = None
    avatar: str | None = None
    rating: float | None = None


class ConversationDetailPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    other_user: UserBriefPayload | None = Field(default=None, alias="otherUser")
    messages: list[MessagePayload] = []


class SendMessageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    receiver_id: int = Field(alias="receiverId")
    content: str
    type: str = "TEXT"

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
