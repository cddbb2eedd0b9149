from __future__ import annotations

import jwt

from chat_party.application.dto.principal import Principal


class HS256Verifier:
    """Verify JWTs signed with a shared HS256 secret."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> Principal:
        payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        user_id = int(payload["sub"])
        display_name = payload.get("name") or payload.get("username") or f"user-{user_id}"
        return Principal(user_id=user_id, display_name=str(display_name))
