from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from theham.core.security import get_current_member_email
from theham.db.database import get_db
from theham.schemas.chat_room import (
    ChatCreate,
    ChatRead,
    ChatRoomCreate,
    ChatRoomCreateResponse,
    ChatRoomDetailResponse,
    ChatRoomReadResponse,
)
from theham.services import chat_room_service
from theham.services.chat_service import ChatService

router = APIRouter(prefix="/chat-rooms", tags=["chat-rooms"])

@router.post("", response_model=ChatRoomCreateResponse, status_code=status.HTTP_201_CREATED)
async def handle_chat_room(
    request: ChatRoomCreate,
    email: str = Depends(get_current_member_email),
    db: AsyncSession = Depends(get_db)
):
    """채팅방 생성 (이미 있으면 기존 채팅방 ID 반환)"""
    chat_room_id = await chat_room_service.handle_chat_room(db, email, request)
    return ChatRoomCreateResponse(chat_room_id=chat_room_id)

@router.get("", response_model=ChatRoomReadResponse)
async def get_chat_room_list(
    page: int = Query(1),
    size: int = Query(10, ge=1, le=100),
    email: str = Depends(get_current_member_email),
    db: AsyncSession = Depends(get_db)
):
    """내 채팅방 목록 (최근 대화 순)"""
    return await chat_room_service.get_chat_room_list(db, email, page, size)

@router.get("/{chat_room_id}", response_model=ChatRoomDetailResponse)
async def get_chat_room(
    chat_room_id: int,
    page: int = Query(1),
    size: int = Query(20, ge=1, le=100),
    email: str = Depends(get_current_member_email),
    db: AsyncSession = Depends(get_db)
):
    """채팅방 상세 조회: 상대방 메시지 읽음 처리 후 메시지를 최신 순으로 반환"""
    return await chat_room_service.get_chat_room(db, email, chat_room_id, page, size)

@router.post("/{chat_room_id}/chats", response_model=ChatRead, status_code=status.HTTP_201_CREATED)
async def send_chat(
    chat_room_id: int,
    chat_in: ChatCreate,
    email: str = Depends(get_current_member_email),
    db: AsyncSession = Depends(get_db)
):
    """메시지 전송 (웹소켓을 쓰지 않는 클라이언트용)"""
    return await ChatService.send_chat(db, email, chat_room_id, chat_in.message)
