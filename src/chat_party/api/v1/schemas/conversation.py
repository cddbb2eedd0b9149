from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from chat_party.domain.value_objects.enums import ConversationKind


class CreateGroupRequest(BaseModel):
    name: str = Field(..., max_length=100)
    description: str | None = Field(None, max_length=2000)


class CreateDirectMessageRequest(BaseModel):
    other_user_id: int


class ConversationResponse(BaseModel):
    id: UUID
    kind: ConversationKind
    name: str
    description: str
    created_by: int | None
    members: list[int]
    last_message_preview: str | None
    last_message_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("members", mode="before")
    @classmethod
    def _sorted_members(cls, value: Any) -> Any:
        if isinstance(value, (set, frozenset)):
            return sorted(value)
        return value
