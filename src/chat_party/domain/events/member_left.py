from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from chat_party.domain.value_objects.enums import EventType


@dataclass(frozen=True, slots=True)
class MemberLeft:
    conversation_id: UUID
    user_id: int
    username: str

    event_type = EventType.MEMBER_LEFT

    def to_data(self) -> dict[str, Any]:
        return {
            "conversation_id": str(self.conversation_id),
            "user_id": self.user_id,
            "username": self.username,
        }
