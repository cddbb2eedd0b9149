from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query

from chat_party.api.deps import CurrentPrincipal, GatewayDep, UoWDep
from chat_party.api.v1.schemas.message import (
    EditMessageRequest,
    MessageResponse,
    SendMessageRequest,
)
from chat_party.config import settings
from chat_party.services import message_service

router = APIRouter(prefix="/api/v1/chat", tags=["messages"])


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=list[MessageResponse],
)
async def list_messages(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    include_deleted: bool = Query(False),
    after_seq: int | None = Query(None, ge=0),
    limit: int | None = Query(None, ge=1, le=settings.HISTORY_MAX_LIMIT),
) -> list[MessageResponse]:
    messages = await message_service.list_for_conversation(
        conversation_id,
        principal.user_id,
        uow,
        include_deleted=include_deleted,
        after_seq=after_seq,
        limit=limit or settings.HISTORY_MAX_LIMIT,
    )
    return [MessageResponse.model_validate(m, from_attributes=True) for m in messages]


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=201,
)
async def send_message(
    conversation_id: UUID,
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    gateway: GatewayDep,
) -> MessageResponse:
    attachment = body.attachment.to_domain() if body.attachment else None
    msg = await gateway.send(conversation_id, principal, body.body, attachment, uow)
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.patch("/messages/{message_id}", response_model=MessageResponse)
async def edit_message(
    message_id: UUID,
    body: EditMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    gateway: GatewayDep,
) -> MessageResponse:
    msg = await gateway.edit(message_id, principal, body.body, uow)
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.delete("/messages/{message_id}", response_model=MessageResponse)
async def delete_message(
    message_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    gateway: GatewayDep,
) -> MessageResponse:
    msg = await gateway.delete(message_id, principal, uow)
    return MessageResponse.model_validate(msg, from_attributes=True)
