"""Relay frame codec.

Decoding never raises: anything malformed or unknown becomes ``None`` so a bad
payload costs one frame, not the connection.
"""
from __future__ import annotations

import logging

from pydantic import ValidationError

from chat_sync.application.dto.signals import OutboundSignal, StopTypingSignal, TypingSignal
from chat_sync.domain.events.chat import ChatEvent, NewMessage, TypingStarted, TypingStopped
from chat_sync.domain.value_objects.enums import FrameType
from chat_sync.infrastructure.mappers.message import payload_to_entity
from chat_sync.infrastructure.ws.protocol import WsInbound, WsOutbound

logger = logging.getLogger(__name__)


def decode_frame(raw: str | bytes) -> ChatEvent | None:
    try:
        frame = WsInbound.model_validate_json(raw)
        return _to_event(frame)
    except (ValidationError, TypeError, ValueError, OverflowError):
        logger.debug("Dropping malformed frame", exc_info=True)
        return None


def _to_event(frame: WsInbound) -> ChatEvent | None:
    if frame.type == FrameType.NEW_MESSAGE:
        if frame.message is None:
            logger.debug("Dropping NEW_MESSAGE without message body")
            return None
        return NewMessage(
            conversation_id=frame.conversation_id,
            # as_utc can overflow on timestamps at the edge of the datetime range
            message=payload_to_entity(frame.message, frame.conversation_id),
        )

    if frame.type in (FrameType.TYPING, FrameType.STOP_TYPING):
        if frame.typing is None:
            logger.debug("Dropping %s without typing body", frame.type)
            return None
        if frame.type == FrameType.TYPING:
            return TypingStarted(
                conversation_id=frame.conversation_id,
                user_id=frame.typing.user_id,
                display_name=frame.typing.nickname or None,
            )
        return TypingStopped(
            conversation_id=frame.conversation_id,
            user_id=frame.typing.user_id,
        )

    logger.debug("Ignoring unknown frame type: %s", frame.type)
    return None


def encode_signal(signal: OutboundSignal) -> str:
    if isinstance(signal, TypingSignal):
        out = WsOutbound(
            type=FrameType.TYPING,
            target_user_id=signal.target_user_id,
            conversation_id=signal.conversation_id,
            nickname=signal.nickname or "",
        )
    elif isinstance(signal, StopTypingSignal):
        out = WsOutbound(
            type=FrameType.STOP_TYPING,
            target_user_id=signal.target_user_id,
            conversation_id=signal.conversation_id,
        )
    else:
        raise TypeError(f"Unsupported outbound signal: {type(signal).__name__}")
    return out.to_frame()
