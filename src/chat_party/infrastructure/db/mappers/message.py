from __future__ import annotations

from chat_party.domain.entities.message import Message
from chat_party.domain.value_objects.attachment import Attachment
from chat_party.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        conversation_id=model.conversation_id,
        author_id=model.author_id,
        seq=model.seq,
        body=model.body,
        attachment=Attachment.from_dict(model.attachment) if model.attachment else None,
        created_at=model.created_at,
        edited_at=model.edited_at,
        is_edited=model.is_edited,
        is_deleted=model.is_deleted,
        deleted_at=model.deleted_at,
    )


def entity_to_model(entity: Message) -> MessageModel:
    return MessageModel(
        id=entity.id,
        conversation_id=entity.conversation_id,
        author_id=entity.author_id,
        seq=entity.seq,
        body=entity.body,
        attachment=entity.attachment.to_dict() if entity.attachment else None,
        created_at=entity.created_at,
        edited_at=entity.edited_at,
        is_edited=entity.is_edited,
        is_deleted=entity.is_deleted,
        deleted_at=entity.deleted_at,
    )
