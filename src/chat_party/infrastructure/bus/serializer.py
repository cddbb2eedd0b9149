"""JSON envelope for events crossing the instance boundary."""
from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import UUID

from chat_party.domain.events.base import ChatEvent, RelayedEvent


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, UUID):
            return str(o)
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


def serialize_event(conversation_id: UUID, event: ChatEvent) -> str:
    envelope = {
        "event": str(event.event_type),
        "conversation_id": conversation_id,
        "data": event.to_data(),
    }
    return json.dumps(envelope, cls=_Encoder)


def deserialize_event(raw: str | bytes) -> RelayedEvent:
    envelope = json.loads(raw)
    return RelayedEvent(
        event_type=envelope["event"],
        conversation_id=UUID(envelope["conversation_id"]),
        data=envelope.get("data") or {},
    )
