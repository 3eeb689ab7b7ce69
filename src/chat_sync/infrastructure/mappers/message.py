from __future__ import annotations

from datetime import datetime, timezone

from chat_sync.application.dto.conversation import ConversationDetail, UserBrief
from chat_sync.domain.entities.message import Message
from chat_sync.infrastructure.http.schemas import ConversationDetailPayload, UserBriefPayload
from chat_sync.infrastructure.ws.protocol import MessagePayload


def as_utc(ts: datetime | None) -> datetime | None:
    """Server timestamps without an offset are taken as UTC."""
    if ts is None:
        return None
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def payload_to_entity(payload: MessagePayload, conversation_id: int) -> Message:
    return Message(
        id=payload.id,
        conversation_id=conversation_id,
        sender_id=payload.sender_id,
        sender_display_name=payload.sender_nickname or None,
        sender_avatar_ref=payload.sender_avatar or None,
        content=payload.content,
        kind=payload.type,
        is_read=bool(payload.is_read),
        created_at=as_utc(payload.created_at),
    )


def user_to_dto(payload: UserBriefPayload | None) -> UserBrief | None:
    if payload is None:
        return None
    return UserBrief(
        id=payload.id,
        username=payload.username,
        nickname=payload.nickname,
        avatar=payload.avatar,
        rating=payload.rating,
    )


def detail_to_dto(payload: ConversationDetailPayload) -> ConversationDetail:
    return ConversationDetail(
        id=payload.id,
        other_user=user_to_dto(payload.other_user),
        messages=[payload_to_entity(m, payload.id) for m in payload.messages],
    )
