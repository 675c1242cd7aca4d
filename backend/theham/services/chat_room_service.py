# backend/theham/services/chat_room_service.py
import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from theham.core.exceptions import BadRequestException, ErrorCode, NotFoundException
from theham.db.database import transactional
from theham.db.models.chat import Chat
from theham.db.models.chat_room import ChatRoom, resolve_participant
from theham.db.models.member import Member
from theham.db.models.rental import Rental
from theham.repositories.chat_repository import ChatRepository
from theham.repositories.chat_room_repository import ChatRoomRepository
from theham.repositories.member_repository import MemberRepository
from theham.repositories.pagination import PageRequest
from theham.repositories.rental_repository import RentalRepository
from theham.schemas.chat_room import (
    ChatRead,
    ChatRoomCreate,
    ChatRoomDetailResponse,
    ChatRoomListItem,
    ChatRoomReadResponse,
)

logger = logging.getLogger(__name__)


async def handle_chat_room(db: AsyncSession, email: str, request: ChatRoomCreate) -> int:
    """
    채팅 요청 처리: (요청자, 게시글) 채팅방이 있으면 그 ID를, 없으면 새로 만들어 ID를 반환합니다.
    같은 방을 동시에 만들다 유니크 제약에 걸리면 먼저 만들어진 방의 ID를 반환합니다.
    """
    try:
        return await _open_or_create_chat_room(db, email, request)
    except IntegrityError:
        logger.warning(
            f"[ChatRoomService] 채팅방 동시 생성 감지, 기존 방 재조회 (rental {request.rental_id}, {email})"
        )

    async with transactional(db):
        rental = await find_rental_by_id(db, request.rental_id)
        sender = await find_member_by_email(db, email)
        chat_room = await ChatRoomRepository.find_by_sender_and_rental(db, sender, rental)
        if chat_room is None:
            raise NotFoundException(ErrorCode.NOT_FOUND_CHAT_ROOM)
        return chat_room.id


async def _open_or_create_chat_room(db: AsyncSession, email: str, request: ChatRoomCreate) -> int:
    async with transactional(db):
        # 1. 렌탈 작성글이 존재하는지 확인
        rental = await find_rental_by_id(db, request.rental_id)

        # 2. 채팅 요청한 member
        sender = await find_member_by_email(db, email)

        # 3. 채팅 요청 받은 member
        receiver = await MemberRepository.find_by_nickname(db, request.seller_nickname)
        if receiver is None:
            logger.error(f"[ChatRoomService] 회원 정보를 찾을 수 없습니다. nickname: {request.seller_nickname}")
            raise NotFoundException(ErrorCode.NOT_FOUND_MEMBER)

        # 4. 자기 자신과의 채팅 방지 (닉네임 상대 + 실제 게시글 주인 둘 다 확인)
        if sender.id == receiver.id or rental.member_id == sender.id:
            raise BadRequestException(ErrorCode.CANNOT_CHAT_WITH_SELF)

        chat_room = await ChatRoomRepository.find_by_sender_and_rental(db, sender, rental)
        if chat_room is None:
            chat_room = await create_chat_room(db, sender, receiver, rental)
        return chat_room.id


async def create_chat_room(db: AsyncSession, sender: Member, receiver: Member, rental: Rental) -> ChatRoom:
    """
    새 채팅방을 만듭니다. receiver 는 요청에 담긴 닉네임의 회원입니다. (게시글 주인과 다를 수 있음)
    """
    new_room = ChatRoom(
        sender=sender,
        receiver=receiver,
        rental=rental,
        sender_unread_count=0,
        receiver_unread_count=0,
    )
    chat_room = await ChatRoomRepository.save(db, new_room)
    logger.info(f"[ChatRoomService] 채팅방 생성 (room {chat_room.id}, rental {rental.id}, {sender.id} -> {receiver.id})")
    return chat_room


async def get_chat_room_list(db: AsyncSession, email: str, page: int, size: int) -> ChatRoomReadResponse:
    """채팅방 전체 목록 조회"""
    member = await find_member_by_email(db, email)

    chat_room_page = await ChatRoomRepository.find_by_member(db, member, PageRequest.of(page, size))

    chat_room_list = []
    for chat_room in chat_room_page.content:
        participant = resolve_participant(chat_room, member)
        to_member = participant.counterpart
        chat_room_list.append(
            ChatRoomListItem(
                chat_room_id=chat_room.id,
                to_member_id=to_member.id,
                to_member_nickname=to_member.nickname,
                to_member_profile_url=to_member.profile_url,
                last_chat=chat_room.last_chat,
                unread_count=participant.unread_count(chat_room),
                modified_at=chat_room.modified_at,
            )
        )

    return ChatRoomReadResponse(
        total_pages=chat_room_page.total_pages,
        current_page=chat_room_page.number,
        chat_room_list=chat_room_list,
    )


async def get_chat_room(db: AsyncSession, email: str, chat_room_id: int, page: int, size: int) -> ChatRoomDetailResponse:
    """
    채팅방 상세 조회.
    상대방이 보낸 안읽은 메시지를 읽음 처리하고 내 안읽은 메시지 수를 0으로 만든 뒤,
    메시지를 최신 순으로 페이지 단위로 돌려줍니다. 읽음 처리와 카운터 초기화는 함께 커밋됩니다.
    """
    async with transactional(db):
        chat_room = await find_chat_room_by_id(db, chat_room_id, for_update=True)
        member = await find_member_by_email(db, email)  # 현재 접속한 멤버

        if not chat_room.is_participant(member):
            logger.error(f"[ChatRoomService] 채팅방 참여자가 아닙니다. room: {chat_room_id}, member: {member.id}")
            raise BadRequestException(ErrorCode.NOT_CHAT_ROOM_MEMBER)

        participant = resolve_participant(chat_room, member)

        # 이전 메시지 읽음 처리
        unread_chats = await read_previous_messages(
            db, chat_room, participant.is_sender, chat_room.sender, chat_room.receiver
        )
        for chat in unread_chats:
            chat.update_is_read()

        # 채팅방 업데이트 (내 카운터만 초기화)
        chat_room.update_chat_room(participant.is_sender)
        await db.flush()

        chat_page = await ChatRepository.find_by_chat_room(db, chat_room, PageRequest.of(page, size))

        to_member = participant.counterpart
        return ChatRoomDetailResponse(
            total_pages=chat_page.total_pages,
            current_page=chat_page.number,
            to_member_nickname=to_member.nickname,
            to_member_profile_url=to_member.profile_url,
            my_profile_url=member.profile_url,
            chat_list=[ChatRead.from_chat(chat) for chat in chat_page.content],
        )


async def read_previous_messages(
    db: AsyncSession, chat_room: ChatRoom, is_sender: bool, sender: Member, receiver: Member
) -> List[Chat]:
    """
    현재 사용자 기준 상대방이 보낸 읽지 않은 메시지를 가져옵니다. (변경 없음)
    현재 사용자가 발신자면 receiver 가, 수신자면 sender 가 보낸 메시지입니다.
    """
    counterpart = receiver if is_sender else sender
    return await ChatRepository.find_by_chat_room_and_sender_and_is_read(db, chat_room, counterpart, False)


async def find_member_by_email(db: AsyncSession, email: str) -> Member:
    member = await MemberRepository.find_by_email(db, email)
    if member is None:
        logger.error(f"[ChatRoomService] 회원 정보를 찾을 수 없습니다. 이메일: {email}")
        raise NotFoundException(ErrorCode.NOT_FOUND_MEMBER)
    return member


async def find_rental_by_id(db: AsyncSession, rental_id: int) -> Rental:
    rental = await RentalRepository.find_by_id(db, rental_id)
    if rental is None:
        logger.error(f"[ChatRoomService] 함께쓰기 게시글 정보를 찾을 수 없습니다. 함께쓰기 ID: {rental_id}")
        raise NotFoundException(ErrorCode.NOT_FOUND_RENTAL)
    return rental


async def find_chat_room_by_id(db: AsyncSession, chat_room_id: int, for_update: bool = False) -> ChatRoom:
    if for_update:
        chat_room = await ChatRoomRepository.find_by_id_for_update(db, chat_room_id)
    else:
        chat_room = await ChatRoomRepository.find_by_id(db, chat_room_id)
    if chat_room is None:
        logger.error(f"[ChatRoomService] 채팅방 정보를 찾을 수 없습니다. 채팅방 ID: {chat_room_id}")
        raise NotFoundException(ErrorCode.NOT_FOUND_CHAT_ROOM)
    return chat_room
