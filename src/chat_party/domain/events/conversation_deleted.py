from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from chat_party.domain.value_objects.enums import ConversationKind, EventType


@dataclass(frozen=True, slots=True)
class ConversationDeleted:
    conversation_id: UUID
    deleted_by: int
    kind: ConversationKind

    event_type = EventType.CONVERSATION_DELETED

    def to_data(self) -> dict[str, Any]:
        return {
            "conversation_id": str(self.conversation_id),
            "deleted_by": self.deleted_by,
            "kind": self.kind.value,
        }
