# backend/theham/api/v1/routers.py
from fastapi import APIRouter
from theham.api.v1 import members, rentals, chat_rooms, chat

# 메인 API 라우터 (/v1)
api_router = APIRouter(prefix="/v1")

# --- 각 기능별 라우터 통합 ---

# 1. 회원 라우터 (회원가입 / 로그인)
api_router.include_router(members.router, prefix="/members", tags=["members"])

# 2. 함께쓰기 게시글 라우터
api_router.include_router(rentals.router)

# 3. 채팅방 라우터 (HTTP API)
api_router.include_router(chat_rooms.router)

# 4. 채팅 웹소켓 라우터
api_router.include_router(chat.router, prefix="/chat", tags=["chat"])
