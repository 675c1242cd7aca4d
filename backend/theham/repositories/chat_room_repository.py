from typing import Optional

from sqlalchemy import Select, select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from theham.db.models.chat_room import ChatRoom
from theham.db.models.member import Member
from theham.db.models.rental import Rental
from theham.repositories.pagination import Page, PageRequest, fetch_page


class ChatRoomRepository:
    """
    채팅방 조회/저장. 모든 메서드는 호출자가 연 세션(트랜잭션) 안에서 동작합니다.
    """

    @staticmethod
    async def find_by_id(db: AsyncSession, chat_room_id: int) -> Optional[ChatRoom]:
        return await db.get(ChatRoom, chat_room_id)

    @staticmethod
    def for_update_statement(chat_room_id: int) -> Select:
        """채팅방 행만 잠그는 조회문 (FOR UPDATE OF chat_rooms)"""
        return (
            select(ChatRoom)
            .where(ChatRoom.id == chat_room_id)
            .with_for_update(of=ChatRoom)
            .execution_options(populate_existing=True)
        )

    @staticmethod
    async def find_by_id_for_update(db: AsyncSession, chat_room_id: int) -> Optional[ChatRoom]:
        result = await db.execute(ChatRoomRepository.for_update_statement(chat_room_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def find_by_sender_and_rental(db: AsyncSession, sender: Member, rental: Rental) -> Optional[ChatRoom]:
        result = await db.execute(
            select(ChatRoom).where(
                ChatRoom.sender_id == sender.id,
                ChatRoom.rental_id == rental.id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def find_by_member(db: AsyncSession, member: Member, page_request: PageRequest) -> Page[ChatRoom]:
        """member 가 sender 이거나 receiver 인 채팅방, 최근 수정 순"""
        condition = or_(ChatRoom.sender_id == member.id, ChatRoom.receiver_id == member.id)
        stmt = (
            select(ChatRoom)
            .where(condition)
            .order_by(ChatRoom.modified_at.desc(), ChatRoom.id.desc())
        )
        count_stmt = select(func.count(ChatRoom.id)).where(condition)
        return await fetch_page(db, stmt, count_stmt, page_request)

    @staticmethod
    async def save(db: AsyncSession, chat_room: ChatRoom) -> ChatRoom:
        db.add(chat_room)
        await db.flush()
        return chat_room
