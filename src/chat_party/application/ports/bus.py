from __future__ import annotations

from typing import Protocol
from uuid import UUID

from chat_party.domain.events.base import ChatEvent


class EventPublisher(Protocol):
    async def publish(self, conversation_id: UUID, event: ChatEvent) -> int: ...
