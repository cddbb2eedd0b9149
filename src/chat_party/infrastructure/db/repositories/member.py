from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from chat_party.domain.entities.member import Member
from chat_party.infrastructure.db.mappers import member as mapper
from chat_party.infrastructure.db.models.member import MemberModel


class MemberReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def is_member(self, conversation_id: UUID, user_id: int) -> bool:
        stmt = (
            select(MemberModel.id)
            .where(
                MemberModel.conversation_id == conversation_id,
                MemberModel.user_id == user_id,
            )
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def list_members(self, conversation_id: UUID) -> list[Member]:
        stmt = (
            select(MemberModel)
            .where(MemberModel.conversation_id == conversation_id)
            .order_by(MemberModel.joined_at, MemberModel.user_id)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class MemberWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, member: Member) -> None:
        stmt = (
            pg_insert(MemberModel)
            .values(
                conversation_id=member.conversation_id,
                user_id=member.user_id,
                joined_at=member.joined_at,
            )
            .on_conflict_do_nothing(constraint="uq_conversation_member")
        )
        await self._session.execute(stmt)

    async def remove(self, conversation_id: UUID, user_id: int) -> bool:
        stmt = (
            delete(MemberModel)
            .where(
                MemberModel.conversation_id == conversation_id,
                MemberModel.user_id == user_id,
            )
            .returning(MemberModel.id)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None
