# backend/theham/api/v1/chat.py
import logging
from typing import Dict, Optional, Set

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from theham.core.exceptions import DomainException
from theham.core.security import verify_websocket_token
from theham.db.database import AsyncSessionLocal
from theham.services.chat_room_service import find_chat_room_by_id, find_member_by_email
from theham.services.chat_service import ChatService

logger = logging.getLogger(__name__)

router = APIRouter()

# Swagger UI에 chat 섹션을 나타나게 하기 위한 상태 확인 엔드포인트
@router.get("/status", tags=["chat"])
async def get_chat_status():
    """
    채팅 서버의 현재 상태를 확인합니다.
    """
    return {
        "status": "online",
        "active_rooms": len(manager.active_connections),
        "active_connections": sum(len(sockets) for sockets in manager.active_connections.values()),
    }

class ChatManager:
    def __init__(self):
        # 채팅방별 접속 중인 소켓 {chat_room_id: {websocket, ...}}
        self.active_connections: Dict[int, Set[WebSocket]] = {}

    async def connect(self, chat_room_id: int, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.setdefault(chat_room_id, set()).add(websocket)
        logger.info(f"[CHAT] 채팅방 {chat_room_id} 연결. 현재 접속 수: {len(self.active_connections[chat_room_id])}")

    def disconnect(self, chat_room_id: int, websocket: WebSocket):
        sockets = self.active_connections.get(chat_room_id)
        if not sockets:
            return
        sockets.discard(websocket)
        if not sockets:
            del self.active_connections[chat_room_id]
        logger.info(f"[CHAT] 채팅방 {chat_room_id} 연결 끊김.")

    async def broadcast(self, message: dict, chat_room_id: int):
        """채팅방에 접속한 모든 소켓에 메시지 전송"""
        for websocket in list(self.active_connections.get(chat_room_id, ())):
            try:
                await websocket.send_json(message)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.warning(f"[CHAT] 채팅방 {chat_room_id} 전송 실패: {e}")
                self.disconnect(chat_room_id, websocket)

manager = ChatManager()

async def _is_room_participant(email: str, chat_room_id: int) -> bool:
    async with AsyncSessionLocal() as db:
        try:
            chat_room = await find_chat_room_by_id(db, chat_room_id)
            member = await find_member_by_email(db, email)
        except DomainException:
            return False
        return chat_room.is_participant(member)

@router.websocket("/ws/{chat_room_id}")
async def chat_endpoint(websocket: WebSocket, chat_room_id: int, token: Optional[str] = Query(None)):
    email = await verify_websocket_token(websocket, token)
    if email is None:
        return

    if not await _is_room_participant(email, chat_room_id):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await manager.connect(chat_room_id, websocket)
    try:
        while True:
            # 1. 클라이언트로부터 메시지 수신 (JSON 형식)
            # 형식 예: {"message": "안녕하세요, 텐트 대여 가능한가요?"}
            data = await websocket.receive_text()

            # 2. 저장 (채팅방 갱신 + 상대방 알림 포함)
            chat = await ChatService.process_message(email, chat_room_id, data)
            if chat is None:
                continue

            # 3. 채팅방 접속자에게 전달
            await manager.broadcast(chat.model_dump(mode="json"), chat_room_id)

    except WebSocketDisconnect:
        logger.info(f"[CHAT] 클라이언트 연결 종료 ({email}, room {chat_room_id})")
    except Exception:
        logger.exception(f"[CHAT] 에러 발생 ({email}, room {chat_room_id})")
    finally:
        manager.disconnect(chat_room_id, websocket)
