"""httpx client for the chat REST endpoints (history pull + send)."""
from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from chat_sync.application.dto.conversation import ConversationDetail
from chat_sync.application.exceptions import AuthenticationFailedError, AuthenticationRequiredError, RequestError
from chat_sync.application.ports.credentials import SessionCredentials
from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.enums import MessageKind, SessionEvent
from chat_sync.infrastructure.bus.broadcast import EventStream
from chat_sync.infrastructure.http.schemas import (
    ApiEnvelope,
    ConversationDetailPayload,
    SendMessageRequest,
)
from chat_sync.infrastructure.mappers import message as mapper
from chat_sync.infrastructure.ws.protocol import MessagePayload

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class HttpxChatApi:
    """Implements application.ports.chat_api.ChatApi."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        credentials: SessionCredentials,
        session_events: EventStream[SessionEvent] | None = None,
    ) -> None:
        self._client = client
        self._credentials = credentials
        self._session_events = session_events

    @classmethod
    def from_base_url(
        cls,
        base_url: str,
        credentials: SessionCredentials,
        session_events: EventStream[SessionEvent] | None = None,
        *,
        timeout: float = 15.0,
    ) -> HttpxChatApi:
        client = httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout)
        return cls(client, credentials, session_events)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_conversation_detail(
        self,
        conversation_id: int,
        page: int = 0,
        size: int = 50,
    ) -> ConversationDetail:
        payload = await self._request(
            "GET",
            f"/api/chat/conversations/{conversation_id}",
            ConversationDetailPayload,
            params={"page": page, "size": size},
        )
        try:
            return mapper.detail_to_dto(payload)
        except (ValueError, OverflowError) as exc:
            raise RequestError(f"Conversation {conversation_id} has an unreadable message") from exc

    async def send_message(
        self,
        receiver_id: int,
        content: str,
        kind: MessageKind = MessageKind.TEXT,
    ) -> Message:
        body = SendMessageRequest(receiver_id=receiver_id, content=content, type=kind.value)
        payload = await self._request(
            "POST", "/api/chat/send", MessagePayload, json=body.to_json(),
        )
        try:
            return mapper.payload_to_entity(payload, conversation_id=0)
        except (ValueError, OverflowError) as exc:
            raise RequestError("Sent message came back unreadable") from exc

    async def _request(
        self,
        method: str,
        path: str,
        model: type[M],
        **kwargs: Any,
    ) -> M:
        token = await self._credentials.token()
        if not token:
            self._publish(SessionEvent.AUTHENTICATION_REQUIRED)
            raise AuthenticationRequiredError("No session credential")

        headers = {"Authorization": f"Bearer {token}"}
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException as exc:
            raise RequestError(f"{method} {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise RequestError(f"{method} {path} failed: {exc}") from exc

        if response.status_code == 401:
            logger.warning("%s %s rejected the session credential", method, path)
            self._publish(SessionEvent.SESSION_EXPIRED)
            raise AuthenticationFailedError("Session expired")

        try:
            envelope = ApiEnvelope[model].model_validate_json(response.content)  # type: ignore[valid-type]
        except ValidationError as exc:
            if response.is_error:
                raise RequestError(
                    f"{method} {path} returned HTTP {response.status_code}",
                    status_code=response.status_code,
                ) from exc
            raise RequestError(f"{method} {path} returned an unreadable body") from exc

        if response.is_error or not envelope.success or envelope.data is None:
            detail = envelope.message or f"{method} {path} returned HTTP {response.status_code}"
            raise RequestError(detail, status_code=response.status_code)
        return envelope.data

    def _publish(self, event: SessionEvent) -> None:
        if self._session_events is not None:
            self._session_events.publish(event)
