"""Orchestration of store writes and live fan-out.

Every mutating call follows validate → persist → broadcast. Validation and
store errors propagate to the caller untouched and nothing is published for
that call; an event only ever leaves this module after the write it describes
has been committed.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
import weakref

from chat_party.application.dto.principal import Principal
from chat_party.application.exceptions import NotFoundError
from chat_party.application.policies.permissions import assert_member
from chat_party.application.ports.bus import EventPublisher
from chat_party.application.ports.clock import Clock
from chat_party.application.ports.session import Session
from chat_party.application.uow import UnitOfWork
from chat_party.domain.entities.conversation import Conversation
from chat_party.domain.entities.message import Message
from chat_party.domain.events.base import ChatEvent
from chat_party.domain.events.conversation_deleted import ConversationDeleted
from chat_party.domain.events.member_left import MemberLeft
from chat_party.domain.events.message_created import MessageCreated
from chat_party.domain.events.message_deleted import MessageDeleted
from chat_party.domain.events.message_edited import MessageEdited
from chat_party.domain.value_objects.attachment import Attachment
from chat_party.infrastructure.ws.presence import PresenceRouter
from chat_party.services import conversation_service, message_service

logger = logging.getLogger(__name__)


class MessageGateway:
    """Coordinates ConversationStore/MessageStore writes with PresenceRouter delivery.

    ``publisher`` defaults to the router itself; in multi-instance deployments
    it is a relay that rebroadcasts to every instance's router.
    """

    def __init__(
        self,
        router: PresenceRouter,
        publisher: EventPublisher | None = None,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._router = router
        self._publisher: EventPublisher = publisher or router
        self._clock = clock
        self._send_locks: weakref.WeakValueDictionary[uuid.UUID, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @property
    def router(self) -> PresenceRouter:
        return self._router

    async def send(
        self,
        conversation_id: uuid.UUID,
        principal: Principal,
        body: str | None,
        attachment: Attachment | None,
        uow: UnitOfWork,
    ) -> Message:
        # Held across persist and publish so this instance emits
        # message-created in the order the store assigned.
        lock = self._send_lock(conversation_id)
        async with lock:
            msg = await message_service.append(
                conversation_id, principal, body, attachment, uow, clock=self._clock,
            )
            await self._broadcast(MessageCreated(message=msg))
        return msg

    async def edit(
        self,
        message_id: uuid.UUID,
        principal: Principal,
        new_body: str | None,
        uow: UnitOfWork,
    ) -> Message:
        msg = await message_service.edit(
            message_id, principal.user_id, new_body, uow, clock=self._clock,
        )
        await self._broadcast(
            MessageEdited(
                conversation_id=msg.conversation_id,
                message_id=msg.id,
                new_body=msg.body or "",
                edited_at=msg.edited_at or msg.created_at,
            )
        )
        return msg

    async def delete(
        self,
        message_id: uuid.UUID,
        principal: Principal,
        uow: UnitOfWork,
    ) -> Message:
        msg = await message_service.soft_delete(
            message_id, principal.user_id, uow, clock=self._clock,
        )
        await self._broadcast(
            MessageDeleted(conversation_id=msg.conversation_id, message_id=msg.id)
        )
        return msg

    async def join(
        self,
        session: Session,
        conversation_id: uuid.UUID,
        uow: UnitOfWork,
    ) -> Conversation:
        """Subscribe a live session to a conversation its user belongs to."""
        conversation = await uow.conversations.get_by_id(conversation_id)
        conversation = await assert_member(
            conversation, session.user_id, uow.members,
        )
        self._router.subscribe(session, conversation_id)
        return conversation

    def leave(self, session: Session, conversation_id: uuid.UUID) -> None:
        self._router.unsubscribe(session, conversation_id)

    async def leave_group(
        self,
        conversation_id: uuid.UUID,
        principal: Principal,
        uow: UnitOfWork,
        session: Session | None = None,
    ) -> Conversation:
        conversation = await conversation_service.remove_member(
            conversation_id, principal.user_id, uow,
        )
        if session is not None:
            self._router.unsubscribe(session, conversation_id)
        self._router.unsubscribe_user(principal.user_id, conversation_id)

        await self._broadcast(
            MemberLeft(
                conversation_id=conversation_id,
                user_id=principal.user_id,
                username=principal.display_name,
            )
        )
        return conversation

    async def delete_chat(
        self,
        conversation_id: uuid.UUID,
        principal: Principal,
        uow: UnitOfWork,
    ) -> Conversation:
        conversation = await uow.conversations.get_by_id(conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation not found")
        if conversation.is_direct:
            deleted = await conversation_service.delete_direct_message(
                conversation_id, principal.user_id, uow,
            )
        else:
            deleted = await conversation_service.delete_group(
                conversation_id, principal.user_id, uow,
            )

        await self._broadcast(
            ConversationDeleted(
                conversation_id=conversation_id,
                deleted_by=principal.user_id,
                kind=deleted.kind,
            )
        )
        # With a relay the room is closed when the event comes back through it.
        if self._publisher is self._router:
            self._router.close_room(conversation_id)
        return deleted

    async def _broadcast(self, event: ChatEvent) -> None:
        # The write is already durable here; a fan-out failure must not turn
        # the request into an error.
        try:
            delivered = await self._publisher.publish(event.conversation_id, event)
        except Exception:
            logger.exception(
                "Failed to publish %s for conversation %s",
                event.event_type,
                event.conversation_id,
            )
            return
        logger.debug(
            "Published %s to conversation %s (%d sessions)",
            event.event_type,
            event.conversation_id,
            delivered,
        )

    def _send_lock(self, conversation_id: uuid.UUID) -> asyncio.Lock:
        lock = self._send_locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._send_locks[conversation_id] = lock
        return lock
