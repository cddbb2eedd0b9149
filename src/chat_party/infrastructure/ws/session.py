from __future__ import annotations

import uuid
from typing import Any

from fastapi import WebSocket

from chat_party.application.dto.principal import Principal
from chat_party.infrastructure.ws.protocol import WsOutbound


class WebSocketSession:
    """Live-delivery handle for one accepted WebSocket."""

    def __init__(self, ws: WebSocket, principal: Principal) -> None:
        self.session_id = uuid.uuid4().hex
        self.principal = principal
        self.user_id = principal.user_id
        self._ws = ws

    async def send_text(self, raw: str) -> None:
        await self._ws.send_text(raw)

    async def close(self, code: int = 1011) -> None:
        await self._ws.close(code=code)

    async def send(self, event_type: str, data: dict[str, Any] | None = None) -> None:
        await self.send_text(WsOutbound(type=event_type, data=data or {}).model_dump_json())

    def __repr__(self) -> str:
        return f"<WebSocketSession {self.session_id} user={self.user_id}>"
