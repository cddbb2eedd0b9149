"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import json
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from types import TracebackType
from typing import Any
from uuid import UUID

import pytest

from chat_party.application.dto.principal import Principal
from chat_party.domain.entities.conversation import Conversation, direct_message_key
from chat_party.domain.entities.member import Member
from chat_party.domain.entities.message import Message
from chat_party.domain.value_objects.attachment import Attachment
from chat_party.domain.value_objects.enums import ConversationKind

_EPOCH = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def alice() -> Principal:
    return Principal(user_id=1, display_name="alice")


@pytest.fixture
def bob() -> Principal:
    return Principal(user_id=2, display_name="bob")


@pytest.fixture
def carol() -> Principal:
    return Principal(user_id=3, display_name="carol")


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = _EPOCH) -> None:
        self._now = start

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


def make_attachment(name: str = "photo.png") -> Attachment:
    return Attachment(
        url=f"https://files.example/{name}",
        original_name=name,
        mime_type="image/png",
        size_bytes=1024,
        is_image=True,
    )


# ---------------------------------------------------------------------------
# In-memory repositories
# ---------------------------------------------------------------------------


@dataclass
class FakeMemberReader:
    _members: list[Member] = field(default_factory=list)

    async def is_member(self, conversation_id: UUID, user_id: int) -> bool:
        return any(
            m.conversation_id == conversation_id and m.user_id == user_id
            for m in self._members
        )

    async def list_members(self, conversation_id: UUID) -> list[Member]:
        return [m for m in self._members if m.conversation_id == conversation_id]

    def user_ids(self, conversation_id: UUID) -> frozenset[int]:
        return frozenset(
            m.user_id for m in self._members if m.conversation_id == conversation_id
        )


@dataclass
class FakeMemberWriter:
    _reader: FakeMemberReader

    async def add(self, member: Member) -> None:
        if not await self._reader.is_member(member.conversation_id, member.user_id):
            self._reader._members.append(member)

    async def remove(self, conversation_id: UUID, user_id: int) -> bool:
        before = len(self._reader._members)
        self._reader._members = [
            m for m in self._reader._members
            if not (m.conversation_id == conversation_id and m.user_id == user_id)
        ]
        return len(self._reader._members) != before


@dataclass
class FakeConversationReader:
    _store: dict[UUID, Conversation] = field(default_factory=dict)
    _members: FakeMemberReader = field(default_factory=FakeMemberReader)

    def _loaded(self, conversation: Conversation) -> Conversation:
        return replace(conversation, members=self._members.user_ids(conversation.id))

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        conversation = self._store.get(conversation_id)
        return self._loaded(conversation) if conversation else None

    async def get_direct_by_key(self, dm_key: str) -> Conversation | None:
        for c in self._store.values():
            if c.is_direct and c.dm_key == dm_key:
                return self._loaded(c)
        return None

    async def list_for_user(self, user_id: int, kind: ConversationKind) -> list[Conversation]:
        mine = [
            self._loaded(c) for c in self._store.values()
            if c.kind == kind and user_id in self._members.user_ids(c.id)
        ]
        if kind is ConversationKind.GROUP:
            return sorted(mine, key=lambda c: c.created_at, reverse=True)
        return sorted(mine, key=lambda c: c.last_message_at or _EPOCH, reverse=True)


@dataclass
class FakeMessageReader:
    _messages: list[Message] = field(default_factory=list)

    async def get_by_id(self, message_id: UUID) -> Message | None:
        for m in self._messages:
            if m.id == message_id:
                return m
        return None

    async def list_messages(
        self,
        conversation_id: UUID,
        *,
        include_deleted: bool = True,
        after_seq: int | None = None,
        limit: int | None = None,
    ) -> list[Message]:
        found = sorted(
            (m for m in self._messages if m.conversation_id == conversation_id),
            key=lambda m: m.seq,
        )
        if not include_deleted:
            found = [m for m in found if not m.is_deleted]
        if after_seq is not None:
            found = [m for m in found if m.seq > after_seq]
        return found[:limit] if limit is not None else found

    def _replace(self, updated: Message) -> None:
        self._messages = [updated if m.id == updated.id else m for m in self._messages]


@dataclass
class FakeConversationWriter:
    _reader: FakeConversationReader
    _messages: FakeMessageReader = field(default_factory=FakeMessageReader)

    async def create(self, conversation: Conversation) -> Conversation:
        self._reader._store[conversation.id] = conversation
        return conversation

    async def create_direct_if_not_exists(
        self, conversation: Conversation
    ) -> tuple[Conversation, bool]:
        assert conversation.dm_key is not None
        existing = await self._reader.get_direct_by_key(conversation.dm_key)
        if existing is not None:
            return existing, False
        self._reader._store[conversation.id] = conversation
        return conversation, True

    async def next_message_seq(self, conversation_id: UUID) -> int | None:
        conversation = self._reader._store.get(conversation_id)
        if conversation is None:
            return None
        seq = conversation.message_seq + 1
        self._reader._store[conversation_id] = replace(conversation, message_seq=seq)
        return seq

    async def record_last_message(
        self, conversation_id: UUID, preview: str, ts: datetime
    ) -> None:
        conversation = self._reader._store.get(conversation_id)
        if conversation is not None:
            latest = max(conversation.last_message_at or ts, ts)
            self._reader._store[conversation_id] = replace(
                conversation, last_message_preview=preview, last_message_at=latest,
            )

    async def delete(self, conversation_id: UUID) -> None:
        self._reader._store.pop(conversation_id, None)
        members = self._reader._members
        members._members = [m for m in members._members if m.conversation_id != conversation_id]
        self._messages._messages = [
            m for m in self._messages._messages if m.conversation_id != conversation_id
        ]


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader

    async def create(self, message: Message) -> Message:
        self._reader._messages.append(message)
        return message

    async def update_body_if_live(
        self, message_id: UUID, body: str, edited_at: datetime
    ) -> Message | None:
        current = await self._reader.get_by_id(message_id)
        if current is None or current.is_deleted:
            return None
        updated = replace(current, body=body, edited_at=edited_at, is_edited=True)
        self._reader._replace(updated)
        return updated

    async def tombstone_if_live(
        self, message_id: UUID, tombstone: str, deleted_at: datetime
    ) -> Message | None:
        current = await self._reader.get_by_id(message_id)
        if current is None or current.is_deleted:
            return None
        updated = replace(
            current,
            body=tombstone,
            attachment=None,
            is_deleted=True,
            deleted_at=deleted_at,
        )
        self._reader._replace(updated)
        return updated


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests. Also usable as ``async with``."""
    members: FakeMemberReader = field(default_factory=FakeMemberReader)
    members_w: FakeMemberWriter | None = None
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    conversations: FakeConversationReader | None = None
    conversations_w: FakeConversationWriter | None = None
    _committed: bool = False
    _commits: int = 0

    def __post_init__(self) -> None:
        if self.conversations is None:
            self.conversations = FakeConversationReader(_members=self.members)
        if self.conversations_w is None:
            self.conversations_w = FakeConversationWriter(self.conversations, self.messages)
        if self.members_w is None:
            self.members_w = FakeMemberWriter(self.members)
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._committed = True
        self._commits += 1

    async def rollback(self) -> None:
        pass

    async def __aenter__(self) -> FakeUoW:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        pass


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------


def seed_group(
    uow: FakeUoW,
    *user_ids: int,
    name: str = "party",
    created_by: int | None = None,
    created_at: datetime = _EPOCH,
) -> Conversation:
    """Store a group whose creator defaults to the first member."""
    conversation = Conversation(
        id=uuid.uuid4(),
        kind=ConversationKind.GROUP,
        name=name,
        description="",
        created_by=created_by if created_by is not None else user_ids[0],
        dm_key=None,
        last_message_preview=None,
        last_message_at=None,
        message_seq=0,
        created_at=created_at,
        updated_at=created_at,
    )
    uow.conversations._store[conversation.id] = conversation
    for user_id in user_ids:
        uow.members._members.append(
            Member(conversation_id=conversation.id, user_id=user_id, joined_at=created_at)
        )
    return replace(conversation, members=frozenset(user_ids))


def seed_direct(
    uow: FakeUoW,
    user_a: int,
    user_b: int,
    *,
    last_message_at: datetime = _EPOCH,
) -> Conversation:
    conversation = Conversation(
        id=uuid.uuid4(),
        kind=ConversationKind.DIRECT,
        name="",
        description="",
        created_by=user_a,
        dm_key=direct_message_key(user_a, user_b),
        last_message_preview=None,
        last_message_at=last_message_at,
        message_seq=0,
        created_at=_EPOCH,
        updated_at=_EPOCH,
    )
    uow.conversations._store[conversation.id] = conversation
    for user_id in (user_a, user_b):
        uow.members._members.append(
            Member(conversation_id=conversation.id, user_id=user_id, joined_at=_EPOCH)
        )
    return replace(conversation, members=frozenset({user_a, user_b}))


def seed_message(
    uow: FakeUoW,
    conversation: Conversation,
    author_id: int,
    body: str | None = "hello",
    *,
    attachment: Attachment | None = None,
    is_deleted: bool = False,
) -> Message:
    stored = uow.conversations._store[conversation.id]
    seq = stored.message_seq + 1
    uow.conversations._store[conversation.id] = replace(stored, message_seq=seq)
    msg = Message(
        id=uuid.uuid4(),
        conversation_id=conversation.id,
        author_id=author_id,
        seq=seq,
        body=body,
        attachment=attachment,
        created_at=_EPOCH + timedelta(seconds=seq),
        is_deleted=is_deleted,
        deleted_at=_EPOCH + timedelta(seconds=seq) if is_deleted else None,
    )
    uow.messages._messages.append(msg)
    return msg


# ---------------------------------------------------------------------------
# Live sessions
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class FakeSession:
    """Session double that records frames; can be told to fail or stall."""
    user_id: int
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    sent: list[str] = field(default_factory=list)
    fail: bool = False
    delay: float = 0.0
    closed: bool = False

    async def send_text(self, raw: str) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ConnectionResetError("socket closed")
        self.sent.append(raw)

    async def close(self) -> None:
        self.closed = True

    @property
    def frames(self) -> list[dict[str, Any]]:
        return [json.loads(raw) for raw in self.sent]

    def types(self) -> list[str]:
        return [frame["type"] for frame in self.frames]
