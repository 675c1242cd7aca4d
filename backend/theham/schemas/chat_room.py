from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


from theham.db.models.chat_room import MAX_CHAT_LENGTH


class ChatRoomCreate(BaseModel):
    """채팅방 생성(또는 기존 방 조회) 요청"""
    rental_id: int = Field(..., description="함께쓰기 게시글 ID")
    seller_nickname: str = Field(..., description="채팅 상대(판매자) 닉네임")


class ChatRoomCreateResponse(BaseModel):
    chat_room_id: int


class ChatRoomListItem(BaseModel):
    """채팅방 목록의 한 줄 (조회하는 회원 기준)"""
    chat_room_id: int
    to_member_id: int = Field(..., description="대화 상대 ID")
    to_member_nickname: str
    to_member_profile_url: Optional[str] = None
    last_chat: Optional[str] = None
    unread_count: int = Field(..., description="내가 읽지 않은 메시지 수")
    modified_at: datetime


class ChatRoomReadResponse(BaseModel):
    total_pages: int
    current_page: int
    chat_room_list: List[ChatRoomListItem]


class ChatRead(BaseModel):
    id: int
    sender_id: int
    sender_nickname: str
    message: str
    is_read: bool
    created_at: datetime

    @classmethod
    def from_chat(cls, chat) -> "ChatRead":
        return cls(
            id=chat.id,
            sender_id=chat.sender_id,
            sender_nickname=chat.sender.nickname,
            message=chat.message,
            is_read=chat.is_read,
            created_at=chat.created_at,
        )


class ChatRoomDetailResponse(BaseModel):
    total_pages: int
    current_page: int
    to_member_nickname: str
    to_member_profile_url: Optional[str] = None
    my_profile_url: Optional[str] = None
    chat_list: List[ChatRead]


class ChatCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=MAX_CHAT_LENGTH)
