"""WebSocket message envelope models."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class WsInbound(BaseModel):
    """Client → Server."""

    # ping | subscribe | unsubscribe | message.send | message.edit | message.delete
    # | group.leave | chat.delete
    type: str
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    # message-created | message-edited | message-deleted | member-left
    # | conversation-deleted | subscribed | unsubscribed | error | pong
    type: str
    data: dict[str, Any] = {}
