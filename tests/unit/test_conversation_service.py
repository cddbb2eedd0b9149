from __future__ import annotations

import asyncio
import uuid
from datetime import timedelta

import pytest

from chat_party.application.exceptions import (
    ForbiddenError,
    NotFoundError,
    NotMemberError,
    ValidationError,
)
from chat_party.domain.value_objects.enums import ConversationKind
from chat_party.services import conversation_service
from tests.conftest import FakeUoW, seed_direct, seed_group, seed_message


@pytest.mark.asyncio
async def test_create_group_makes_creator_the_only_member(alice):
    uow = FakeUoW()

    conv = await conversation_service.create_group("  Book club ", None, alice, uow)

    assert conv.kind == ConversationKind.GROUP
    assert conv.name == "Book club"
    assert conv.description == ""
    assert conv.created_by == alice.user_id
    assert conv.members == frozenset({alice.user_id})
    assert await uow.members.is_member(conv.id, alice.user_id)
    assert uow._committed is True


@pytest.mark.asyncio
async def test_create_group_rejects_blank_name(alice):
    uow = FakeUoW()

    with pytest.raises(ValidationError):
        await conversation_service.create_group("   ", "desc", alice, uow)

    assert uow.conversations._store == {}
    assert uow._committed is False


@pytest.mark.asyncio
async def test_direct_message_is_idempotent_for_unordered_pair(alice, bob):
    uow = FakeUoW()

    first, created_first = await conversation_service.create_or_get_direct_message(
        alice.user_id, bob.user_id, uow,
    )
    second, created_second = await conversation_service.create_or_get_direct_message(
        bob.user_id, alice.user_id, uow,
    )

    assert created_first is True
    assert created_second is False
    assert first.id == second.id
    assert first.dm_key == "1:2"
    assert second.members == frozenset({alice.user_id, bob.user_id})
    assert len(uow.conversations._store) == 1


@pytest.mark.asyncio
async def test_direct_message_starts_with_activity_timestamp(alice, bob):
    uow = FakeUoW()

    conv, _ = await conversation_service.create_or_get_direct_message(
        alice.user_id, bob.user_id, uow,
    )

    assert conv.last_message_at == conv.created_at


@pytest.mark.asyncio
async def test_concurrent_direct_message_creation_converges(alice, bob):
    uow = FakeUoW()

    results = await asyncio.gather(
        conversation_service.create_or_get_direct_message(alice.user_id, bob.user_id, uow),
        conversation_service.create_or_get_direct_message(bob.user_id, alice.user_id, uow),
    )

    assert results[0][0].id == results[1][0].id
    assert len(uow.conversations._store) == 1


@pytest.mark.asyncio
async def test_direct_message_with_self_is_rejected(alice):
    with pytest.raises(ValidationError):
        await conversation_service.create_or_get_direct_message(
            alice.user_id, alice.user_id, FakeUoW(),
        )


@pytest.mark.asyncio
async def test_list_for_user_orders_groups_then_direct_messages(alice, bob, carol):
    uow = FakeUoW()
    old_group = seed_group(uow, alice.user_id, name="old")
    new_group = seed_group(
        uow, alice.user_id, name="new",
        created_at=old_group.created_at + timedelta(days=1),
    )
    seed_group(uow, bob.user_id, name="not mine")
    quiet_dm = seed_direct(uow, alice.user_id, bob.user_id)
    busy_dm = seed_direct(
        uow, alice.user_id, carol.user_id,
        last_message_at=quiet_dm.last_message_at + timedelta(hours=1),
    )

    result = await conversation_service.list_for_user(alice.user_id, uow)

    assert [c.id for c in result] == [new_group.id, old_group.id, busy_dm.id, quiet_dm.id]


@pytest.mark.asyncio
async def test_list_for_user_filters_by_kind(alice, bob):
    uow = FakeUoW()
    seed_group(uow, alice.user_id)
    dm = seed_direct(uow, alice.user_id, bob.user_id)

    result = await conversation_service.list_for_user(
        alice.user_id, uow, kind=ConversationKind.DIRECT,
    )

    assert [c.id for c in result] == [dm.id]


@pytest.mark.asyncio
async def test_get_conversation_requires_membership(alice, carol):
    uow = FakeUoW()
    group = seed_group(uow, alice.user_id)

    assert (await conversation_service.get_conversation(group.id, alice, uow)).id == group.id
    with pytest.raises(ForbiddenError):
        await conversation_service.get_conversation(group.id, carol, uow)
    with pytest.raises(NotFoundError):
        await conversation_service.get_conversation(uuid.uuid4(), alice, uow)


@pytest.mark.asyncio
async def test_add_member_is_idempotent(alice, bob):
    uow = FakeUoW()
    group = seed_group(uow, alice.user_id)

    await conversation_service.add_member(group.id, bob.user_id, uow)
    conv = await conversation_service.add_member(group.id, bob.user_id, uow)

    assert conv.members == frozenset({alice.user_id, bob.user_id})
    assert len(await uow.members.list_members(group.id)) == 2


@pytest.mark.asyncio
async def test_add_member_rejects_direct_messages(alice, bob, carol):
    uow = FakeUoW()
    dm = seed_direct(uow, alice.user_id, bob.user_id)

    with pytest.raises(ValidationError):
        await conversation_service.add_member(dm.id, carol.user_id, uow)
    with pytest.raises(NotFoundError):
        await conversation_service.add_member(uuid.uuid4(), carol.user_id, uow)


@pytest.mark.asyncio
async def test_remove_last_member_keeps_group(alice):
    uow = FakeUoW()
    group = seed_group(uow, alice.user_id)

    conv = await conversation_service.remove_member(group.id, alice.user_id, uow)

    assert conv.members == frozenset()
    assert group.id in uow.conversations._store


@pytest.mark.asyncio
async def test_remove_non_member_raises_not_member(alice, bob):
    uow = FakeUoW()
    group = seed_group(uow, alice.user_id)

    with pytest.raises(NotMemberError) as exc_info:
        await conversation_service.remove_member(group.id, bob.user_id, uow)

    assert exc_info.value.code == "not_member"
    assert isinstance(exc_info.value, ForbiddenError)


@pytest.mark.asyncio
async def test_delete_group_only_by_creator_and_cascades(alice, bob):
    uow = FakeUoW()
    group = seed_group(uow, alice.user_id, bob.user_id)
    seed_message(uow, group, bob.user_id)

    with pytest.raises(ForbiddenError):
        await conversation_service.delete_group(group.id, bob.user_id, uow)

    await conversation_service.delete_group(group.id, alice.user_id, uow)

    assert uow.conversations._store == {}
    assert uow.members._members == []
    assert uow.messages._messages == []


@pytest.mark.asyncio
async def test_delete_group_rejects_direct_message(alice, bob):
    uow = FakeUoW()
    dm = seed_direct(uow, alice.user_id, bob.user_id)

    with pytest.raises(NotFoundError):
        await conversation_service.delete_group(dm.id, alice.user_id, uow)


@pytest.mark.asyncio
async def test_delete_direct_message_by_either_member(alice, bob, carol):
    uow = FakeUoW()
    dm = seed_direct(uow, alice.user_id, bob.user_id)

    with pytest.raises(ForbiddenError):
        await conversation_service.delete_direct_message(dm.id, carol.user_id, uow)

    await conversation_service.delete_direct_message(dm.id, bob.user_id, uow)

    assert dm.id not in uow.conversations._store


@pytest.mark.asyncio
async def test_delete_direct_message_rejects_group(alice):
    uow = FakeUoW()
    group = seed_group(uow, alice.user_id)

    with pytest.raises(NotFoundError):
        await conversation_service.delete_direct_message(group.id, alice.user_id, uow)
