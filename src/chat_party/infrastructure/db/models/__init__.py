"""Import all models so metadata.create_all sees every table."""
from chat_party.infrastructure.db.models.conversation import ConversationModel
from chat_party.infrastructure.db.models.member import MemberModel
from chat_party.infrastructure.db.models.message import MessageModel

__all__ = [
    "ConversationModel",
    "MemberModel",
    "MessageModel",
]
