from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from chat_party.domain.entities.conversation import Conversation
from chat_party.domain.value_objects.enums import ConversationKind


class ConversationReader(Protocol):
    async def get_by_id(self, conversation_id: UUID) -> Conversation | None: ...

    async def get_direct_by_key(self, dm_key: str) -> Conversation | None: ...

    async def list_for_user(
        self, user_id: int, kind: ConversationKind
    ) -> list[Conversation]:
        """Groups newest-created first, direct messages most recently active first."""
        ...


class ConversationWriter(Protocol):
    async def create(self, conversation: Conversation) -> Conversation: ...

    async def create_direct_if_not_exists(
        self, conversation: Conversation
    ) -> tuple[Conversation, bool]:
        """Insert a DM. If the dm_key is taken → return (existing, False)."""
        ...

    async def next_message_seq(self, conversation_id: UUID) -> int | None:
        """Atomically reserve the next message sequence number.

        Holds the conversation row until commit. None if the conversation is gone.
        """
        ...

    async def record_last_message(
        self, conversation_id: UUID, preview: str, ts: datetime
    ) -> None: ...

    async def delete(self, conversation_id: UUID) -> None:
        """Remove the conversation together with its members and messages."""
        ...
