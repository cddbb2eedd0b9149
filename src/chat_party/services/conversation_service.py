from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone

from chat_party.application.dto.principal import Principal
from chat_party.application.exceptions import (
    ForbiddenError,
    NotFoundError,
    NotMemberError,
    ValidationError,
)
from chat_party.application.policies.permissions import (
    assert_group_owner,
    assert_member,
)
from chat_party.application.uow import UnitOfWork
from chat_party.domain.entities.conversation import Conversation, direct_message_key
from chat_party.domain.entities.member import Member
from chat_party.domain.value_objects.enums import ConversationKind

logger = logging.getLogger(__name__)


async def create_group(
    name: str,
    description: str | None,
    creator: Principal,
    uow: UnitOfWork,
) -> Conversation:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Group name is required")

    now = datetime.now(timezone.utc)
    conversation = Conversation(
        id=uuid.uuid4(),
        kind=ConversationKind.GROUP,
        name=name,
        description=(description or "").strip(),
        created_by=creator.user_id,
        dm_key=None,
        last_message_preview=None,
        last_message_at=None,
        message_seq=0,
        created_at=now,
        updated_at=now,
    )
    conversation = await uow.conversations_w.create(conversation)
    await uow.members_w.add(
        Member(conversation_id=conversation.id, user_id=creator.user_id, joined_at=now)
    )
    await uow.commit()

    logger.info("Group %s created by user %d", conversation.id, creator.user_id)
    return replace(conversation, members=frozenset({creator.user_id}))


async def create_or_get_direct_message(
    user_a: int,
    user_b: int,
    uow: UnitOfWork,
) -> tuple[Conversation, bool]:
    """Return the DM for this unordered pair, creating it on first use.

    Returns (conversation, created).
    """
    if user_a == user_b:
        raise ValidationError("Cannot create a conversation with yourself")

    dm_key = direct_message_key(user_a, user_b)
    existing = await uow.conversations.get_direct_by_key(dm_key)
    if existing is not None:
        return existing, False

    now = datetime.now(timezone.utc)
    conversation = Conversation(
        id=uuid.uuid4(),
        kind=ConversationKind.DIRECT,
        name="",
        description="",
        created_by=user_a,
        dm_key=dm_key,
        last_message_preview=None,
        last_message_at=now,
        message_seq=0,
        created_at=now,
        updated_at=now,
    )
    conversation, created = await uow.conversations_w.create_direct_if_not_exists(
        conversation
    )
    if not created:
        # Lost the race to a concurrent first call for the same pair
        return conversation, False

    for user_id in (user_a, user_b):
        await uow.members_w.add(
            Member(conversation_id=conversation.id, user_id=user_id, joined_at=now)
        )
    await uow.commit()
    return replace(conversation, members=frozenset({user_a, user_b})), True


async def list_for_user(
    user_id: int,
    uow: UnitOfWork,
    *,
    kind: ConversationKind | None = None,
) -> list[Conversation]:
    if kind is not None:
        return await uow.conversations.list_for_user(user_id, kind)
    groups = await uow.conversations.list_for_user(user_id, ConversationKind.GROUP)
    directs = await uow.conversations.list_for_user(user_id, ConversationKind.DIRECT)
    return groups + directs


async def get_conversation(
    conversation_id: uuid.UUID,
    principal: Principal,
    uow: UnitOfWork,
) -> Conversation:
    conversation = await uow.conversations.get_by_id(conversation_id)
    return await assert_member(conversation, principal.user_id, uow.members)


async def add_member(
    conversation_id: uuid.UUID,
    user_id: int,
    uow: UnitOfWork,
) -> Conversation:
    conversation = await _get_group(conversation_id, uow)
    if await uow.members.is_member(conversation_id, user_id):
        return conversation

    await uow.members_w.add(
        Member(
            conversation_id=conversation_id,
            user_id=user_id,
            joined_at=datetime.now(timezone.utc),
        )
    )
    await uow.commit()
    return replace(conversation, members=conversation.members | {user_id})


async def remove_member(
    conversation_id: uuid.UUID,
    user_id: int,
    uow: UnitOfWork,
) -> Conversation:
    """Drop a user from a group. The group survives even when it becomes empty."""
    conversation = await _get_group(conversation_id, uow)

    removed = await uow.members_w.remove(conversation_id, user_id)
    if not removed:
        raise NotMemberError("You are not a member of this group")

    await uow.commit()
    return replace(conversation, members=conversation.members - {user_id})


async def delete_group(
    conversation_id: uuid.UUID,
    requester_id: int,
    uow: UnitOfWork,
) -> Conversation:
    conversation = await uow.conversations.get_by_id(conversation_id)
    if conversation is None or not conversation.is_group:
        raise NotFoundError("Group not found")
    assert_group_owner(conversation, requester_id)

    await uow.conversations_w.delete(conversation_id)
    await uow.commit()
    logger.info("Group %s deleted by user %d", conversation_id, requester_id)
    return conversation


async def delete_direct_message(
    conversation_id: uuid.UUID,
    requester_id: int,
    uow: UnitOfWork,
) -> Conversation:
    conversation = await uow.conversations.get_by_id(conversation_id)
    if conversation is None or not conversation.is_direct:
        raise NotFoundError("Conversation not found")
    if not await uow.members.is_member(conversation_id, requester_id):
        raise ForbiddenError("Access denied")

    await uow.conversations_w.delete(conversation_id)
    await uow.commit()
    logger.info("Direct conversation %s deleted by user %d", conversation_id, requester_id)
    return conversation


async def _get_group(conversation_id: uuid.UUID, uow: UnitOfWork) -> Conversation:
    conversation = await uow.conversations.get_by_id(conversation_id)
    if conversation is None:
        raise NotFoundError("Conversation not found")
    if not conversation.is_group:
        raise ValidationError("Direct messages have fixed membership")
    return conversation
