from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from chat_party.api.deps import CurrentPrincipal, GatewayDep, UoWDep
from chat_party.api.v1.schemas.conversation import (
    ConversationResponse,
    CreateDirectMessageRequest,
    CreateGroupRequest,
)
from chat_party.domain.value_objects.enums import ConversationKind
from chat_party.services import conversation_service

router = APIRouter(prefix="/api/v1/chat", tags=["conversations"])


@router.post("/groups", response_model=ConversationResponse, status_code=201)
async def create_group(
    body: CreateGroupRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ConversationResponse:
    conv = await conversation_service.create_group(
        body.name, body.description, principal, uow,
    )
    return ConversationResponse.model_validate(conv, from_attributes=True)


@router.post("/groups/{conversation_id}/join", response_model=ConversationResponse)
async def join_group(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ConversationResponse:
    conv = await conversation_service.add_member(conversation_id, principal.user_id, uow)
    return ConversationResponse.model_validate(conv, from_attributes=True)


@router.post("/groups/{conversation_id}/leave", status_code=204)
async def leave_group(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    gateway: GatewayDep,
) -> Response:
    await gateway.leave_group(conversation_id, principal, uow)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/direct", response_model=ConversationResponse)
async def open_direct_message(
    body: CreateDirectMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    response: Response,
) -> ConversationResponse:
    conv, created = await conversation_service.create_or_get_direct_message(
        principal.user_id, body.other_user_id, uow,
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return ConversationResponse.model_validate(conv, from_attributes=True)


@router.get("/conversations", response_model=list[ConversationResponse])
async def list_conversations(
    principal: CurrentPrincipal,
    uow: UoWDep,
    kind: ConversationKind | None = Query(None),
) -> list[ConversationResponse]:
    convs = await conversation_service.list_for_user(principal.user_id, uow, kind=kind)
    return [ConversationResponse.model_validate(c, from_attributes=True) for c in convs]


@router.get("/conversations/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ConversationResponse:
    conv = await conversation_service.get_conversation(conversation_id, principal, uow)
    return ConversationResponse.model_validate(conv, from_attributes=True)


@router.delete("/conversations/{conversation_id}", status_code=204)
async def delete_conversation(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    gateway: GatewayDep,
) -> Response:
    await gateway.delete_chat(conversation_id, principal, uow)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
