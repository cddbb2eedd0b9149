from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from chat_party.domain.entities.message import Message


class MessageReader(Protocol):
    async def get_by_id(self, message_id: UUID) -> Message | None: ...

    async def list_messages(
        self,
        conversation_id: UUID,
        *,
        include_deleted: bool = True,
        after_seq: int | None = None,
        limit: int | None = None,
    ) -> list[Message]: ...


class MessageWriter(Protocol):
    async def create(self, message: Message) -> Message: ...

    async def update_body_if_live(
        self, message_id: UUID, body: str, edited_at: datetime
    ) -> Message | None:
        """Compare-and-set edit. None when the message is deleted (or missing)."""
        ...

    async def tombstone_if_live(
        self, message_id: UUID, tombstone: str, deleted_at: datetime
    ) -> Message | None:
        """Compare-and-set soft delete. None when already deleted (or missing)."""
        ...
