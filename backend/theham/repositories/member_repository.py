from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from theham.db.models.member import Member


class MemberRepository:

    @staticmethod
    async def find_by_id(db: AsyncSession, member_id: int) -> Optional[Member]:
        return await db.get(Member, member_id)

    @staticmethod
    async def find_by_email(db: AsyncSession, email: str) -> Optional[Member]:
        result = await db.execute(select(Member).where(Member.email == email))
        return result.scalar_one_or_none()

    @staticmethod
    async def find_by_nickname(db: AsyncSession, nickname: str) -> Optional[Member]:
        result = await db.execute(select(Member).where(Member.nickname == nickname))
        return result.scalar_one_or_none()

    @staticmethod
    async def save(db: AsyncSession, member: Member) -> Member:
        db.add(member)
        await db.flush()
        return member
