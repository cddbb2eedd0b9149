from __future__ import annotations

from chat_party.domain.entities.conversation import Conversation
from chat_party.domain.value_objects.enums import ConversationKind
from chat_party.infrastructure.db.models.conversation import ConversationModel


def model_to_entity(model: ConversationModel, *, with_members: bool = True) -> Conversation:
    members = frozenset(m.user_id for m in model.members) if with_members else frozenset()
    return Conversation(
        id=model.id,
        kind=ConversationKind(model.kind),
        name=model.name,
        description=model.description,
        created_by=model.created_by,
        dm_key=model.dm_key,
        last_message_preview=model.last_message_preview,
        last_message_at=model.last_message_at,
        message_seq=model.message_seq,
        created_at=model.created_at,
        updated_at=model.updated_at,
        members=members,
    )


def entity_to_model(entity: Conversation) -> ConversationModel:
    return ConversationModel(
        id=entity.id,
        kind=entity.kind.value,
        name=entity.name,
        description=entity.description,
        created_by=entity.created_by,
        dm_key=entity.dm_key,
        last_message_preview=entity.last_message_preview,
        last_message_at=entity.last_message_at,
        message_seq=entity.message_seq,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
    )


def entity_to_values(entity: Conversation) -> dict:
    """Column values for Core inserts."""
    return {
        "id": entity.id,
        "kind": entity.kind.value,
        "name": entity.name,
        "description": entity.description,
        "created_by": entity.created_by,
        "dm_key": entity.dm_key,
        "last_message_preview": entity.last_message_preview,
        "last_message_at": entity.last_message_at,
        "message_seq": entity.message_seq,
        "created_at": entity.created_at,
        "updated_at": entity.updated_at,
    }
