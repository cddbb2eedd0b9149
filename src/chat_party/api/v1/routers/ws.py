from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from chat_party.api.deps import get_verifier
from chat_party.api.v1.schemas.ws import (
    ConversationRef,
    MessageRef,
    WsEditMessage,
    WsSendMessage,
)
from chat_party.application.dto.principal import Principal
from chat_party.application.exceptions import AppError
from chat_party.application.uow import UnitOfWork
from chat_party.config import settings
from chat_party.infrastructure.ws.protocol import WsInbound
from chat_party.infrastructure.ws.session import WebSocketSession
from chat_party.services.gateway import MessageGateway

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


@dataclass(slots=True)
class _Connection:
    session: WebSocketSession
    gateway: MessageGateway
    uow_factory: Callable[[], AbstractAsyncContextManager[UnitOfWork]]

    @property
    def principal(self) -> Principal:
        return self.session.principal


async def _authenticate(token: str) -> Principal | None:
    try:
        verifier = get_verifier()
        return await verifier.verify(token)
    except Exception:
        logger.debug("WS auth failed", exc_info=True)
        return None


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    token: str = Query(...),
) -> None:
    principal = await _authenticate(token)
    if principal is None:
        await websocket.close(code=4001, reason="Authentication failed")
        return

    await websocket.accept()
    conn = _Connection(
        session=WebSocketSession(websocket, principal),
        gateway=websocket.app.state.gateway,
        uow_factory=websocket.app.state.uow_factory,
    )
    presence = conn.gateway.router
    presence.connect(conn.session)

    heartbeat_task = asyncio.create_task(
        _heartbeat(conn.session), name=f"ws-heartbeat-{conn.session.session_id}",
    )
    try:
        await _read_loop(websocket, conn)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %r", conn.session)
    finally:
        heartbeat_task.cancel()
        presence.on_disconnect(conn.session)


async def _heartbeat(session: WebSocketSession) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await session.send("pong")
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("Heartbeat stopped for %r", session, exc_info=True)


async def _read_loop(ws: WebSocket, conn: _Connection) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except PydanticValidationError:
            await conn.session.send("error", {"code": "invalid_payload"})
            continue

        handler = _HANDLERS.get(msg.type)
        if handler is None:
            await conn.session.send(
                "error", {"code": "unknown_type", "type": msg.type},
            )
            continue

        try:
            await handler(conn, msg.data)
        except AppError as exc:
            await conn.session.send("error", {"code": exc.code, "detail": exc.detail})
        except PydanticValidationError as exc:
            await conn.session.send(
                "error",
                {"code": "invalid_data", "detail": exc.errors(include_url=False)[0]["msg"]},
            )


async def _handle_ping(conn: _Connection, data: dict[str, Any]) -> None:
    await conn.session.send("pong")


async def _handle_subscribe(conn: _Connection, data: dict[str, Any]) -> None:
    conversation_id = ConversationRef.model_validate(data).conversation_id
    async with conn.uow_factory() as uow:
        await conn.gateway.join(conn.session, conversation_id, uow)
    await conn.session.send("subscribed", {"conversation_id": str(conversation_id)})


async def _handle_unsubscribe(conn: _Connection, data: dict[str, Any]) -> None:
    conversation_id = ConversationRef.model_validate(data).conversation_id
    conn.gateway.leave(conn.session, conversation_id)
    await conn.session.send("unsubscribed", {"conversation_id": str(conversation_id)})


async def _handle_send(conn: _Connection, data: dict[str, Any]) -> None:
    cmd = WsSendMessage.model_validate(data)
    attachment = cmd.attachment.to_domain() if cmd.attachment else None
    async with conn.uow_factory() as uow:
        await conn.gateway.send(
            cmd.conversation_id, conn.principal, cmd.body, attachment, uow,
        )


async def _handle_edit(conn: _Connection, data: dict[str, Any]) -> None:
    cmd = WsEditMessage.model_validate(data)
    async with conn.uow_factory() as uow:
        await conn.gateway.edit(cmd.message_id, conn.principal, cmd.body, uow)


async def _handle_delete(conn: _Connection, data: dict[str, Any]) -> None:
    message_id = MessageRef.model_validate(data).message_id
    async with conn.uow_factory() as uow:
        await conn.gateway.delete(message_id, conn.principal, uow)


async def _handle_group_leave(conn: _Connection, data: dict[str, Any]) -> None:
    conversation_id = ConversationRef.model_validate(data).conversation_id
    async with conn.uow_factory() as uow:
        await conn.gateway.leave_group(
            conversation_id, conn.principal, uow, session=conn.session,
        )
    await conn.session.send("unsubscribed", {"conversation_id": str(conversation_id)})


async def _handle_chat_delete(conn: _Connection, data: dict[str, Any]) -> None:
    conversation_id = ConversationRef.model_validate(data).conversation_id
    async with conn.uow_factory() as uow:
        await conn.gateway.delete_chat(conversation_id, conn.principal, uow)


_HANDLERS: dict[str, Callable[[_Connection, dict[str, Any]], Awaitable[None]]] = {
    "ping": _handle_ping,
    "subscribe": _handle_subscribe,
    "unsubscribe": _handle_unsubscribe,
    "message.send": _handle_send,
    "message.edit": _handle_edit,
    "message.delete": _handle_delete,
    "group.leave": _handle_group_leave,
    "chat.delete": _handle_chat_delete,
}
