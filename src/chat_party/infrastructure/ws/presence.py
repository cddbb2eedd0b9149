"""In-process room table and fan-out for live sessions."""
from __future__ import annotations

import asyncio
import logging
import threading
from uuid import UUID

from chat_party.application.ports.session import Session
from chat_party.domain.events.base import ChatEvent
from chat_party.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


class PresenceRouter:
    """Maps sessions to conversation rooms and delivers events to a room.

    All bookkeeping happens under one lock; ``publish`` sends to a snapshot
    of the room taken under that lock, outside of it. Delivery is
    best-effort: a session that fails to receive is dropped, never retried.
    """

    def __init__(self, *, send_timeout: float = 5.0) -> None:
        self._lock = threading.Lock()
        self._rooms: dict[UUID, set[Session]] = {}
        self._sessions: dict[Session, set[UUID]] = {}
        self._send_timeout = send_timeout
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def init(self) -> None:
        with self._lock:
            self._rooms.clear()
            self._sessions.clear()
            self._running = True
        logger.info("Presence router started")

    def shutdown(self) -> None:
        with self._lock:
            dropped = len(self._sessions)
            self._rooms.clear()
            self._sessions.clear()
            self._running = False
        logger.info("Presence router stopped (dropped %d sessions)", dropped)

    def connect(self, session: Session) -> None:
        with self._lock:
            self._sessions.setdefault(session, set())
            total = len(self._sessions)
        logger.debug("Session connected: %s user=%d (total=%d)", session.session_id, session.user_id, total)

    def subscribe(self, session: Session, conversation_id: UUID) -> None:
        with self._lock:
            self._sessions.setdefault(session, set()).add(conversation_id)
            self._rooms.setdefault(conversation_id, set()).add(session)
        logger.debug("Session %s joined room %s", session.session_id, conversation_id)

    def unsubscribe(self, session: Session, conversation_id: UUID) -> None:
        with self._lock:
            self._detach(session, conversation_id)

    def unsubscribe_user(self, user_id: int, conversation_id: UUID) -> int:
        """Remove every session of ``user_id`` from the room."""
        with self._lock:
            members = [s for s in self._rooms.get(conversation_id, ()) if s.user_id == user_id]
            for session in members:
                self._detach(session, conversation_id)
        return len(members)

    def on_disconnect(self, session: Session) -> None:
        with self._lock:
            rooms = self._sessions.pop(session, None)
            if rooms is None:
                return
            for conversation_id in rooms:
                self._discard_from_room(conversation_id, session)
        logger.debug("Session disconnected: %s", session.session_id)

    def close_room(self, conversation_id: UUID) -> None:
        with self._lock:
            for session in self._rooms.pop(conversation_id, set()):
                rooms = self._sessions.get(session)
                if rooms is not None:
                    rooms.discard(conversation_id)

    def sessions_in(self, conversation_id: UUID) -> frozenset[Session]:
        with self._lock:
            return frozenset(self._rooms.get(conversation_id, ()))

    def rooms_of(self, session: Session) -> frozenset[UUID]:
        with self._lock:
            return frozenset(self._sessions.get(session, ()))

    async def publish(self, conversation_id: UUID, event: ChatEvent) -> int:
        """Send ``event`` to every session in the room. Returns deliveries made."""
        with self._lock:
            if not self._running:
                return 0
            targets = list(self._rooms.get(conversation_id, ()))
        if not targets:
            return 0

        raw = WsOutbound(type=str(event.event_type), data=event.to_data()).model_dump_json()
        results = await asyncio.gather(*(self._deliver(s, raw) for s in targets))

        dead = [s for s, ok in zip(targets, results) if not ok]
        if dead:
            await asyncio.gather(*(self._drop(s) for s in dead))
        return len(targets) - len(dead)

    async def _deliver(self, session: Session, raw: str) -> bool:
        try:
            await asyncio.wait_for(session.send_text(raw), timeout=self._send_timeout)
        except Exception:
            logger.warning("Dropping unreachable session %s", session.session_id, exc_info=True)
            return False
        return True

    async def _drop(self, session: Session) -> None:
        """Forget a session that missed a frame and close its transport.

        The client sees the close and has to reconnect and resubscribe.
        """
        self.on_disconnect(session)
        try:
            await asyncio.wait_for(session.close(), timeout=self._send_timeout)
        except Exception:
            logger.debug("Closing session %s failed", session.session_id, exc_info=True)

    def _detach(self, session: Session, conversation_id: UUID) -> None:
        rooms = self._sessions.get(session)
        if rooms is not None:
            rooms.discard(conversation_id)
        self._discard_from_room(conversation_id, session)

    def _discard_from_room(self, conversation_id: UUID, session: Session) -> None:
        subs = self._rooms.get(conversation_id)
        if subs is None:
            return
        subs.discard(session)
        if not subs:
            del self._rooms[conversation_id]
