from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from chat_party.domain.value_objects.attachment import Attachment

TOMBSTONE_TEXT = "[Message deleted]"


@dataclass(frozen=True, slots=True)
class Message:
    id: UUID
    conversation_id: UUID
    author_id: int
    seq: int
    body: str | None
    attachment: Attachment | None
    created_at: datetime
    edited_at: datetime | None = None
    is_edited: bool = False
    is_deleted: bool = False
    deleted_at: datetime | None = None

    @property
    def preview(self) -> str:
        """Short text used for conversation listings."""
        if self.body:
            return self.body
        if self.attachment is not None:
            return f"\N{PAPERCLIP} {self.attachment.original_name}"
        return ""
