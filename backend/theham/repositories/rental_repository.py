from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from theham.db.models.chat_room import ChatRoom
from theham.db.models.rental import Rental
from theham.repositories.pagination import Page, PageRequest, fetch_page


class RentalRepository:

    @staticmethod
    async def find_by_id(db: AsyncSession, rental_id: int) -> Optional[Rental]:
        return await db.get(Rental, rental_id)

    @staticmethod
    async def find_all(db: AsyncSession, page_request: PageRequest) -> Page[Rental]:
        stmt = select(Rental).order_by(Rental.created_at.desc(), Rental.id.desc())
        count_stmt = select(func.count(Rental.id))
        return await fetch_page(db, stmt, count_stmt, page_request)

    @staticmethod
    async def has_chat_rooms(db: AsyncSession, rental: Rental) -> bool:
        result = await db.execute(
            select(func.count(ChatRoom.id)).where(ChatRoom.rental_id == rental.id)
        )
        return result.scalar_one() > 0

    @staticmethod
    async def save(db: AsyncSession, rental: Rental) -> Rental:
        db.add(rental)
        await db.flush()
        return rental

    @staticmethod
    async def delete(db: AsyncSession, rental: Rental):
        await db.delete(rental)
        await db.flush()
