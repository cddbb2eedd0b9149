from __future__ import annotations

from typing import Protocol


class Session(Protocol):
    """One connected client's live-delivery handle."""

    session_id: str
    user_id: int

    async def send_text(self, raw: str) -> None: ...

    async def close(self) -> None:
        """End the connection; the transport then runs its own disconnect path."""
        ...
