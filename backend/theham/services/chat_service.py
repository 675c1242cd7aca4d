# backend/theham/services/chat_service.py
import json
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from theham.core.exceptions import BadRequestException, DomainException, ErrorCode
from theham.db.database import AsyncSessionLocal, get_utc_now, transactional
from theham.db.database_redis import RedisManager
from theham.db.models.chat import Chat
from theham.db.models.chat_room import MAX_CHAT_LENGTH, resolve_participant
from theham.repositories.chat_repository import ChatRepository
from theham.schemas.chat_room import ChatRead
from theham.services.chat_room_service import find_chat_room_by_id, find_member_by_email

logger = logging.getLogger(__name__)

class ChatService:
    @staticmethod
    async def send_chat(db: AsyncSession, email: str, chat_room_id: int, message: str) -> ChatRead:
        """
        채팅방에 메시지를 저장합니다.
        메시지 저장과 채팅방 갱신(마지막 메시지, 상대방 안읽은 수, 수정 시각)은 한 트랜잭션입니다.
        커밋 후 상대방에게 Redis 알림을 발행합니다.
        """
        content = (message or "").strip()
        if not content:
            raise BadRequestException(ErrorCode.EMPTY_CHAT_MESSAGE)
        if len(content) > MAX_CHAT_LENGTH:
            logger.warning(f"[ChatService] 메시지 길이 초과 ({email}, room {chat_room_id}): {len(content)}")
            raise BadRequestException(ErrorCode.CHAT_MESSAGE_TOO_LONG)

        async with transactional(db):
            # 카운터 증가는 채팅방 행 잠금 안에서 수행
            chat_room = await find_chat_room_by_id(db, chat_room_id, for_update=True)
            member = await find_member_by_email(db, email)

            if not chat_room.is_participant(member):
                logger.error(f"[ChatService] 채팅방 참여자가 아닙니다. room: {chat_room_id}, member: {member.id}")
                raise BadRequestException(ErrorCode.NOT_CHAT_ROOM_MEMBER)

            participant = resolve_participant(chat_room, member)

            chat = await ChatRepository.save(db, Chat(
                chat_room_id=chat_room.id,
                sender=member,
                message=content,
                is_read=False,
                created_at=get_utc_now(),
            ))
            chat_room.update_last_chat(content, participant.is_sender)
            await db.flush()

            chat_read = ChatRead.from_chat(chat)
            receiver_id = participant.counterpart.id

        # 알림 발행 (트랜잭션 종료 후 수행)
        notification_payload = {
            "type": "CHAT_NOTIFICATION",
            "chat_room_id": chat_room_id,
            "from_member_id": member.id,
            "sender_nickname": member.nickname,
            "message": content,
            "created_at": chat_read.created_at.isoformat(),
        }

        try:
            await RedisManager.publish_chat_notification(receiver_id, notification_payload)
        except Exception as e:
            logger.error(f"[ChatService] Redis 발행 실패 (Member {member.id} -> {receiver_id}): {e}")

        return chat_read

    @staticmethod
    async def process_message(
        email: str,
        chat_room_id: int,
        raw_data: str,
        session_factory: Optional[async_sessionmaker] = None,
    ) -> Optional[ChatRead]:
        """
        웹소켓으로 받은 메시지를 처리합니다.
        1. JSON 파싱 (PING 은 무시)
        2. DB 저장 (메시지마다 별도 세션 사용)
        저장된 메시지를 반환하고, 무시하거나 실패한 경우 None 을 반환합니다.
        """
        try:
            message_json = json.loads(raw_data)
        except (json.JSONDecodeError, TypeError) as e:
            logger.error(f"[ChatService] 메시지 파싱 에러 ({email}): {e}")
            return None

        if not isinstance(message_json, dict):
            logger.warning(f"[ChatService] 잘못된 메시지 형식 ({email}): {type(message_json).__name__}")
            return None

        # [Heartbeat] PING 메시지 처리
        if message_json.get("type") == "PING":
            return None

        if "message" not in message_json:
            logger.warning(f"[ChatService] 필수 필드 누락 ({email}): {list(message_json.keys())}")
            return None

        # DB 세션을 이 블록 안에서만 사용하고 즉시 닫음
        async with (session_factory or AsyncSessionLocal)() as db:
            try:
                return await ChatService.send_chat(db, email, chat_room_id, str(message_json["message"]))
            except DomainException as e:
                logger.warning(f"[ChatService] 메시지 거부 ({email}, room {chat_room_id}): {e.detail}")
                return None
