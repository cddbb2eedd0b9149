"""Payloads of client WebSocket commands (the ``data`` of ``WsInbound``)."""
from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel

from chat_party.api.v1.schemas.message import EditMessageRequest, SendMessageRequest


class ConversationRef(BaseModel):
    conversation_id: UUID


class MessageRef(BaseModel):
    message_id: UUID


class WsSendMessage(SendMessageRequest):
    conversation_id: UUID


class WsEditMessage(EditMessageRequest):
    message_id: UUID
