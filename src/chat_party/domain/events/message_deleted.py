from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from chat_party.domain.value_objects.enums import EventType


@dataclass(frozen=True, slots=True)
class MessageDeleted:
    conversation_id: UUID
    message_id: UUID

    event_type = EventType.MESSAGE_DELETED

    def to_data(self) -> dict[str, Any]:
        return {
            "conversation_id": str(self.conversation_id),
            "message_id": str(self.message_id),
        }
