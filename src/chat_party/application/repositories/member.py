from __future__ import annotations

from typing import Protocol
from uuid import UUID

from chat_party.domain.entities.member import Member


class MemberReader(Protocol):
    async def is_member(self, conversation_id: UUID, user_id: int) -> bool: ...

    async def list_members(self, conversation_id: UUID) -> list[Member]: ...


class MemberWriter(Protocol):
    async def add(self, member: Member) -> None: ...

    async def remove(self, conversation_id: UUID, user_id: int) -> bool:
        """Return False if the user was not a member."""
        ...
