from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from chat_party.domain.value_objects.attachment import Attachment


class AttachmentSchema(BaseModel):
    url: str
    original_name: str
    mime_type: str
    size_bytes: int = Field(..., ge=0)
    is_image: bool = False

    model_config = {"from_attributes": True}

    def to_domain(self) -> Attachment:
        return Attachment(**self.model_dump())


class SendMessageRequest(BaseModel):
    body: str | None = Field(None, max_length=4000)
    attachment: AttachmentSchema | None = None


class EditMessageRequest(BaseModel):
    body: str = Field(..., max_length=4000)


class MessageResponse(BaseModel):
    id: UUID
    conversation_id: UUID
    author_id: int
    seq: int
    body: str | None
    attachment: AttachmentSchema | None
    created_at: datetime
    edited_at: datetime | None
    is_edited: bool
    is_deleted: bool
    deleted_at: datetime | None

    model_config = {"from_attributes": True}
