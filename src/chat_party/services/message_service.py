from __future__ import annotations

import logging
import uuid

from chat_party.application.dto.principal import Principal
from chat_party.application.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from chat_party.application.policies.permissions import assert_member
from chat_party.application.ports.clock import Clock, SystemClock
from chat_party.application.uow import UnitOfWork
from chat_party.domain.entities.message import TOMBSTONE_TEXT, Message
from chat_party.domain.value_objects.attachment import Attachment

logger = logging.getLogger(__name__)

_default_clock = SystemClock()


async def append(
    conversation_id: uuid.UUID,
    author: Principal,
    body: str | None,
    attachment: Attachment | None,
    uow: UnitOfWork,
    *,
    clock: Clock | None = None,
) -> Message:
    """Persist a new message at the end of the conversation's history.

    The sequence number is reserved on the conversation row, which stays
    locked until commit, so concurrent appends to one conversation never share
    an order key.
    """
    body = body.strip() if body else None
    if not body and attachment is None:
        raise ValidationError("Message must have text or an attachment")

    conversation = await uow.conversations.get_by_id(conversation_id)
    await assert_member(conversation, author.user_id, uow.members)

    seq = await uow.conversations_w.next_message_seq(conversation_id)
    if seq is None:
        raise NotFoundError("Conversation not found")

    msg = Message(
        id=uuid.uuid4(),
        conversation_id=conversation_id,
        author_id=author.user_id,
        seq=seq,
        body=body or None,
        attachment=attachment,
        created_at=(clock or _default_clock).now(),
    )
    msg = await uow.messages_w.create(msg)
    await uow.conversations_w.record_last_message(
        conversation_id, msg.preview, msg.created_at,
    )
    await uow.commit()
    return msg


async def list_for_conversation(
    conversation_id: uuid.UUID,
    requester_id: int,
    uow: UnitOfWork,
    *,
    include_deleted: bool = True,
    after_seq: int | None = None,
    limit: int | None = None,
) -> list[Message]:
    conversation = await uow.conversations.get_by_id(conversation_id)
    await assert_member(conversation, requester_id, uow.members)
    return await uow.messages.list_messages(
        conversation_id,
        include_deleted=include_deleted,
        after_seq=after_seq,
        limit=limit,
    )


async def get_message(message_id: uuid.UUID, uow: UnitOfWork) -> Message:
    msg = await uow.messages.get_by_id(message_id)
    if msg is None:
        raise NotFoundError("Message not found")
    return msg


async def edit(
    message_id: uuid.UUID,
    requester_id: int,
    new_body: str | None,
    uow: UnitOfWork,
    *,
    clock: Clock | None = None,
) -> Message:
    msg = await get_message(message_id, uow)
    if msg.author_id != requester_id:
        raise ForbiddenError("You can only edit your own messages")

    new_body = (new_body or "").strip()
    if not new_body:
        raise ValidationError("Message text is required")
    if msg.is_deleted:
        raise ConflictError("Cannot edit deleted messages")

    edited_at = max((clock or _default_clock).now(), msg.created_at)
    updated = await uow.messages_w.update_body_if_live(message_id, new_body, edited_at)
    if updated is None:
        logger.info("Edit of message %s lost a race to its deletion", message_id)
        raise ConflictError("Cannot edit deleted messages")

    await uow.commit()
    return updated


async def soft_delete(
    message_id: uuid.UUID,
    requester_id: int,
    uow: UnitOfWork,
    *,
    clock: Clock | None = None,
) -> Message:
    msg = await get_message(message_id, uow)
    if msg.author_id != requester_id:
        raise ForbiddenError("You can only delete your own messages")
    if msg.is_deleted:
        raise ConflictError("Message already deleted")

    deleted_at = max((clock or _default_clock).now(), msg.created_at)
    updated = await uow.messages_w.tombstone_if_live(message_id, TOMBSTONE_TEXT, deleted_at)
    if updated is None:
        raise ConflictError("Message already deleted")

    await uow.commit()
    return updated
