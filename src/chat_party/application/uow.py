from __future__ import annotations

from typing import Protocol

from chat_party.application.repositories.conversation import (
    ConversationReader,
    ConversationWriter,
)
from chat_party.application.repositories.member import MemberReader, MemberWriter
from chat_party.application.repositories.message import MessageReader, MessageWriter


class UnitOfWork(Protocol):
    conversations: ConversationReader
    conversations_w: ConversationWriter
    members: MemberReader
    members_w: MemberWriter
    messages: MessageReader
    messages_w: MessageWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...
