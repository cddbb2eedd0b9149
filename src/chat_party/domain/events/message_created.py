from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from chat_party.domain.entities.message import Message
from chat_party.domain.value_objects.enums import EventType


def message_to_data(msg: Message) -> dict[str, Any]:
    return {
        "id": str(msg.id),
        "conversation_id": str(msg.conversation_id),
        "author_id": msg.author_id,
        "seq": msg.seq,
        "body": msg.body,
        "attachment": msg.attachment.to_dict() if msg.attachment else None,
        "created_at": msg.created_at.isoformat(),
        "edited_at": msg.edited_at.isoformat() if msg.edited_at else None,
        "is_edited": msg.is_edited,
        "is_deleted": msg.is_deleted,
    }


@dataclass(frozen=True, slots=True)
class MessageCreated:
    message: Message

    event_type = EventType.MESSAGE_CREATED

    @property
    def conversation_id(self) -> UUID:
        return self.message.conversation_id

    def to_data(self) -> dict[str, Any]:
        return {
            "conversation_id": str(self.conversation_id),
            "message": message_to_data(self.message),
        }
