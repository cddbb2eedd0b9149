from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from chat_party.domain.entities.message import Message
from chat_party.infrastructure.db.mappers import message as mapper
from chat_party.infrastructure.db.models.message import MessageModel


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, message_id: UUID) -> Message | None:
        result = await self._session.get(MessageModel, message_id, populate_existing=True)
        return mapper.model_to_entity(result) if result else None

    async def list_messages(
        self,
        conversation_id: UUID,
        *,
        include_deleted: bool = True,
        after_seq: int | None = None,
        limit: int | None = None,
    ) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(MessageModel.conversation_id == conversation_id)
            .order_by(MessageModel.seq.asc())
        )
        if not include_deleted:
            stmt = stmt.where(MessageModel.is_deleted.is_(False))
        if after_seq is not None:
            stmt = stmt.where(MessageModel.seq > after_seq)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, message: Message) -> Message:
        model = mapper.entity_to_model(message)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def update_body_if_live(
        self,
        message_id: UUID,
        body: str,
        edited_at: datetime,
    ) -> Message | None:
        stmt = (
            update(MessageModel)
            .where(MessageModel.id == message_id, MessageModel.is_deleted.is_(False))
            .values(body=body, edited_at=edited_at, is_edited=True)
            .returning(MessageModel)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()
        return mapper.model_to_entity(row) if row else None

    async def tombstone_if_live(
        self,
        message_id: UUID,
        tombstone: str,
        deleted_at: datetime,
    ) -> Message | None:
        stmt = (
            update(MessageModel)
            .where(MessageModel.id == message_id, MessageModel.is_deleted.is_(False))
            .values(
                body=tombstone,
                attachment=None,
                is_deleted=True,
                deleted_at=deleted_at,
            )
            .returning(MessageModel)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()
        return mapper.model_to_entity(row) if row else None
