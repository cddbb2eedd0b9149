from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from chat_party.domain.value_objects.enums import ConversationKind


def direct_message_key(user_a: int, user_b: int) -> str:
    """Canonical key of an unordered user pair."""
    low, high = sorted((user_a, user_b))
    return f"{low}:{high}"


@dataclass(frozen=True, slots=True)
class Conversation:
    id: UUID
    kind: ConversationKind
    name: str
    description: str
    created_by: int | None
    dm_key: str | None
    last_message_preview: str | None
    last_message_at: datetime | None
    message_seq: int
    created_at: datetime
    updated_at: datetime
    members: frozenset[int] = field(default_factory=frozenset)

    @property
    def is_group(self) -> bool:
        return self.kind == ConversationKind.GROUP

    @property
    def is_direct(self) -> bool:
        return self.kind == ConversationKind.DIRECT
