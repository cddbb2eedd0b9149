from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from chat_party.domain.entities.conversation import Conversation
from chat_party.domain.value_objects.enums import ConversationKind
from chat_party.infrastructure.db.mappers import conversation as mapper
from chat_party.infrastructure.db.models.conversation import ConversationModel
from chat_party.infrastructure.db.models.member import MemberModel


class ConversationReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        result = await self._session.get(
            ConversationModel, conversation_id, populate_existing=True,
        )
        return mapper.model_to_entity(result) if result else None

    async def get_direct_by_key(self, dm_key: str) -> Conversation | None:
        stmt = (
            select(ConversationModel)
            .where(
                ConversationModel.kind == ConversationKind.DIRECT.value,
                ConversationModel.dm_key == dm_key,
            )
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_for_user(
        self,
        user_id: int,
        kind: ConversationKind,
    ) -> list[Conversation]:
        stmt = (
            select(ConversationModel)
            .join(
                MemberModel,
                MemberModel.conversation_id == ConversationModel.id,
            )
            .where(
                MemberModel.user_id == user_id,
                ConversationModel.kind == kind.value,
            )
        )
        if kind is ConversationKind.GROUP:
            stmt = stmt.order_by(ConversationModel.created_at.desc(), ConversationModel.id)
        else:
            stmt = stmt.order_by(
                ConversationModel.last_message_at.desc().nullslast(),
                ConversationModel.id,
            )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class ConversationWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, conversation: Conversation) -> Conversation:
        model = mapper.entity_to_model(conversation)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model, with_members=False)

    async def create_direct_if_not_exists(
        self, conversation: Conversation
    ) -> tuple[Conversation, bool]:
        """Insert a DM idempotently on dm_key. Returns (conversation, created_flag)."""
        stmt = (
            pg_insert(ConversationModel)
            .values(**mapper.entity_to_values(conversation))
            .on_conflict_do_nothing(constraint="uq_conversation_dm_key")
            .returning(ConversationModel)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()

        if row is not None:
            return mapper.model_to_entity(row, with_members=False), True

        # Conflict: the pair already has a DM
        assert conversation.dm_key is not None
        existing = await ConversationReaderRepo(self._session).get_direct_by_key(
            conversation.dm_key
        )
        assert existing is not None
        return existing, False

    async def next_message_seq(self, conversation_id: UUID) -> int | None:
        stmt = (
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(message_seq=ConversationModel.message_seq + 1)
            .returning(ConversationModel.message_seq)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def record_last_message(
        self,
        conversation_id: UUID,
        preview: str,
        ts: datetime,
    ) -> None:
        stmt = (
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(
                last_message_preview=preview,
                # GREATEST skips NULL, so the first message sets it
                last_message_at=func.greatest(ConversationModel.last_message_at, ts),
            )
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)

    async def delete(self, conversation_id: UUID) -> None:
        # members and messages go with it (ON DELETE CASCADE)
        stmt = (
            delete(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)
