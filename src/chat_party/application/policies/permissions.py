from __future__ import annotations

from chat_party.application.exceptions import ForbiddenError, NotFoundError
from chat_party.application.repositories.member import MemberReader
from chat_party.domain.entities.conversation import Conversation


async def assert_member(
    conversation: Conversation | None,
    user_id: int,
    members: MemberReader,
) -> Conversation:
    """Raise if conversation doesn't exist or the user is not one of its members."""
    if conversation is None:
        raise NotFoundError("Conversation not found")

    if not await members.is_member(conversation.id, user_id):
        raise ForbiddenError("Not a member of this conversation")

    return conversation


def assert_group_owner(conversation: Conversation, user_id: int) -> None:
    if conversation.created_by != user_id:
        raise ForbiddenError("Only the group creator can delete the group")
