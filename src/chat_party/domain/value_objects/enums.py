from __future__ import annotations

from enum import StrEnum


class ConversationKind(StrEnum):
    GROUP = "group"
    DIRECT = "direct"


class EventType(StrEnum):
    MESSAGE_CREATED = "message-created"
    MESSAGE_EDITED = "message-edited"
    MESSAGE_DELETED = "message-deleted"
    MEMBER_LEFT = "member-left"
    CONVERSATION_DELETED = "conversation-deleted"
