from __future__ import annotations

import json
import uuid

import pytest

from chat_party.domain.events.base import RelayedEvent
from chat_party.domain.events.member_left import MemberLeft
from chat_party.domain.events.message_edited import MessageEdited
from chat_party.domain.value_objects.enums import EventType
from chat_party.infrastructure.bus.redis_pubsub import (
    RedisFanoutPublisher,
    make_router_dispatcher,
)
from chat_party.infrastructure.bus.serializer import deserialize_event, serialize_event
from chat_party.infrastructure.ws.presence import PresenceRouter
from tests.conftest import FakeSession


class FakeRedis:
    def __init__(self) -> None:
        self.published: list[tuple[str, str]] = []

    async def publish(self, channel: str, raw: str) -> int:
        self.published.append((channel, raw))
        return 3


@pytest.fixture
def router():
    r = PresenceRouter()
    r.init()
    yield r
    r.shutdown()


def test_envelope_carries_wire_type_and_data(clock):
    room = uuid.uuid4()
    event = MessageEdited(
        conversation_id=room,
        message_id=uuid.uuid4(),
        new_body="hello",
        edited_at=clock.now(),
    )

    envelope = json.loads(serialize_event(room, event))

    assert envelope["event"] == "message-edited"
    assert envelope["conversation_id"] == str(room)
    assert envelope["data"]["edited_at"] == clock.now().isoformat()

    relayed = deserialize_event(serialize_event(room, event).encode())
    assert relayed == RelayedEvent(
        event_type="message-edited", conversation_id=room, data=event.to_data(),
    )


@pytest.mark.asyncio
async def test_publisher_sends_on_configured_channel():
    redis = FakeRedis()
    room = uuid.uuid4()
    publisher = RedisFanoutPublisher(redis, "chat.test")

    listeners = await publisher.publish(
        room, MemberLeft(conversation_id=room, user_id=7, username="gus"),
    )

    assert listeners == 3
    [(channel, raw)] = redis.published
    assert channel == "chat.test"
    assert json.loads(raw)["event"] == "member-left"


@pytest.mark.asyncio
async def test_dispatcher_delivers_relayed_frame_locally(router):
    room = uuid.uuid4()
    s = FakeSession(1)
    router.subscribe(s, room)
    dispatch = make_router_dispatcher(router)

    await dispatch(
        RelayedEvent(
            event_type=EventType.MESSAGE_DELETED,
            conversation_id=room,
            data={"conversation_id": str(room), "message_id": "m-1"},
        )
    )

    assert s.frames == [
        {
            "type": "message-deleted",
            "data": {"conversation_id": str(room), "message_id": "m-1"},
        }
    ]


@pytest.mark.asyncio
async def test_dispatcher_drops_leaver_before_delivering(router):
    room = uuid.uuid4()
    leaver, stayer = FakeSession(1), FakeSession(2)
    router.subscribe(leaver, room)
    router.subscribe(stayer, room)
    dispatch = make_router_dispatcher(router)

    await dispatch(
        RelayedEvent(
            event_type=EventType.MEMBER_LEFT,
            conversation_id=room,
            data={"conversation_id": str(room), "user_id": 1, "username": "a"},
        )
    )

    assert leaver.sent == []
    assert stayer.types() == ["member-left"]
    assert router.sessions_in(room) == frozenset({stayer})


@pytest.mark.asyncio
async def test_dispatcher_closes_room_after_conversation_deleted(router):
    room = uuid.uuid4()
    s = FakeSession(1)
    router.subscribe(s, room)
    dispatch = make_router_dispatcher(router)

    await dispatch(
        RelayedEvent(
            event_type=EventType.CONVERSATION_DELETED,
            conversation_id=room,
            data={"conversation_id": str(room), "deleted_by": 1, "kind": "group"},
        )
    )

    assert s.types() == ["conversation-deleted"]
    assert router.sessions_in(room) == frozenset()
