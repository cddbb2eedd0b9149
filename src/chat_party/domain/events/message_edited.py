from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from chat_party.domain.value_objects.enums import EventType


@dataclass(frozen=True, slots=True)
class MessageEdited:
    conversation_id: UUID
    message_id: UUID
    new_body: str
    edited_at: datetime

    event_type = EventType.MESSAGE_EDITED

    def to_data(self) -> dict[str, Any]:
        return {
            "conversation_id": str(self.conversation_id),
            "message_id": str(self.message_id),
            "new_body": self.new_body,
            "edited_at": self.edited_at.isoformat(),
        }
