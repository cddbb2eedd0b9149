from __future__ import annotations

from chat_party.domain.entities.member import Member
from chat_party.infrastructure.db.models.member import MemberModel


def model_to_entity(model: MemberModel) -> Member:
    return Member(
        conversation_id=model.conversation_id,
        user_id=model.user_id,
        joined_at=model.joined_at,
    )
