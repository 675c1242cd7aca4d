from typing import List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from theham.db.models.chat import Chat
from theham.db.models.chat_room import ChatRoom
from theham.db.models.member import Member
from theham.repositories.pagination import Page, PageRequest, fetch_page


class ChatRepository:

    @staticmethod
    async def find_by_chat_room(db: AsyncSession, chat_room: ChatRoom, page_request: PageRequest) -> Page[Chat]:
        """채팅방 메시지, 최신 순"""
        stmt = (
            select(Chat)
            .where(Chat.chat_room_id == chat_room.id)
            .order_by(Chat.created_at.desc(), Chat.id.desc())
        )
        count_stmt = select(func.count(Chat.id)).where(Chat.chat_room_id == chat_room.id)
        return await fetch_page(db, stmt, count_stmt, page_request)

    @staticmethod
    async def find_by_chat_room_and_sender_and_is_read(
        db: AsyncSession, chat_room: ChatRoom, sender: Member, is_read: bool
    ) -> List[Chat]:
        # 페이지네이션 없이 전부 조회 (읽음 처리 대상)
        result = await db.execute(
            select(Chat).where(
                Chat.chat_room_id == chat_room.id,
                Chat.sender_id == sender.id,
                Chat.is_read == is_read,
            )
        )
        return list(result.scalars().all())

    @staticmethod
    async def save(db: AsyncSession, chat: Chat) -> Chat:
        db.add(chat)
        await db.flush()
        return chat
