"""Redis Pub/Sub relay for fan-out across service instances."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine
from uuid import UUID

import redis.asyncio as aioredis

from chat_party.domain.events.base import ChatEvent, RelayedEvent
from chat_party.domain.value_objects.enums import EventType
from chat_party.infrastructure.bus.serializer import deserialize_event, serialize_event
from chat_party.infrastructure.ws.presence import PresenceRouter

logger = logging.getLogger(__name__)


class RedisFanoutPublisher:
    """Implements application.ports.bus.EventPublisher over a shared channel."""

    def __init__(self, redis: aioredis.Redis, channel: str) -> None:
        self._redis = redis
        self._channel = channel

    async def publish(self, conversation_id: UUID, event: ChatEvent) -> int:
        raw = serialize_event(conversation_id, event)
        # Number of instances listening, not of sessions reached
        return await self._redis.publish(self._channel, raw)


OnEventCallback = Callable[[RelayedEvent], Coroutine[Any, Any, None]]


def make_router_dispatcher(router: PresenceRouter) -> OnEventCallback:
    """Build the subscriber callback that replays relayed events locally."""

    async def _dispatch(event: RelayedEvent) -> None:
        conversation_id = event.conversation_id
        if event.event_type == EventType.MEMBER_LEFT and "user_id" in event.data:
            router.unsubscribe_user(int(event.data["user_id"]), conversation_id)

        await router.publish(conversation_id, event)

        if event.event_type == EventType.CONVERSATION_DELETED:
            router.close_room(conversation_id)

    return _dispatch


class RedisPubSubSubscriber:
    """Background task that listens to a Redis channel and dispatches events."""

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        callback: OnEventCallback,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._listen(), name="redis-pubsub-subscriber")
        logger.info("Redis Pub/Sub subscriber started on channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            logger.info("Redis Pub/Sub subscriber stopped")

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._channel)
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    await self._callback(deserialize_event(message["data"]))
                except Exception:
                    logger.exception("Error processing pubsub message")
        finally:
            await pubsub.unsubscribe(self._channel)
            await pubsub.aclose()
