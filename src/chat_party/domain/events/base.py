from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import UUID


class ChatEvent(Protocol):
    """Anything the presence router can fan out to a room."""

    @property
    def event_type(self) -> str: ...

    @property
    def conversation_id(self) -> UUID: ...

    def to_data(self) -> dict[str, Any]: ...


@dataclass(frozen=True, slots=True)
class RelayedEvent:
    """Event received from another instance, already in wire form."""

    event_type: str
    conversation_id: UUID
    data: dict[str, Any] = field(default_factory=dict)

    def to_data(self) -> dict[str, Any]:
        return self.data
