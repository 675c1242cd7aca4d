import json

import pytest
from fastapi import WebSocketDisconnect, status
from fastapi.testclient import TestClient
from sqlalchemy import select

from conftest import create_rental
from theham.api.v1 import chat as chat_module
from theham.api.v1.chat import ChatManager, chat_endpoint
from theham.core.security import create_access_token
from theham.core.exceptions import BadRequestException, ErrorCode, NotFoundException
from theham.db.models.chat import Chat
from theham.db.models.chat_room import MAX_CHAT_LENGTH, ChatRoom
from theham.main import app
from theham.schemas.chat_room import ChatRoomCreate
from theham.services import chat_room_service
from theham.services.chat_service import ChatService


@pytest.fixture
async def chat_room_id(session_factory, members, rental):
    async with session_factory() as s:
        return await chat_room_service.handle_chat_room(
            s, "a@x.com", ChatRoomCreate(rental_id=rental.id, seller_nickname="b-nick")
        )


async def test_send_chat_updates_room_for_counterpart(session_factory, members, chat_room_id, published):
    a, b, _ = members

    async with session_factory() as s:
        chat = await ChatService.send_chat(s, "a@x.com", chat_room_id, "  안녕하세요  ")

    assert chat.message == "안녕하세요"
    assert chat.sender_id == a.id
    assert chat.sender_nickname == "a-nick"
    assert chat.is_read is False

    async with session_factory() as s:
        room = await s.get(ChatRoom, chat_room_id)
    assert room.last_chat == "안녕하세요"
    assert room.receiver_unread_count == 1
    assert room.sender_unread_count == 0

    receiver_id, payload = published[0]
    assert receiver_id == b.id
    assert payload["type"] == "CHAT_NOTIFICATION"
    assert payload["chat_room_id"] == chat_room_id
    assert payload["from_member_id"] == a.id


async def test_send_chat_from_receiver_increments_sender_counter(session_factory, members, chat_room_id, published):
    a, _, _ = members
    for text in ("네", "대여 가능합니다"):
        async with session_factory() as s:
            await ChatService.send_chat(s, "b@x.com", chat_room_id, text)

    async with session_factory() as s:
        room = await s.get(ChatRoom, chat_room_id)
    assert room.sender_unread_count == 2
    assert room.receiver_unread_count == 0
    assert room.last_chat == "대여 가능합니다"
    assert [receiver_id for receiver_id, _ in published] == [a.id, a.id]


async def test_send_chat_bumps_room_to_top_of_list(session_factory, members, db, chat_room_id):
    _, b, _ = members
    newer_rental = await create_rental(db, b, title="newer")
    async with session_factory() as s:
        newer_room_id = await chat_room_service.handle_chat_room(
            s, "a@x.com", ChatRoomCreate(rental_id=newer_rental.id, seller_nickname="b-nick")
        )

    async with session_factory() as s:
        await ChatService.send_chat(s, "b@x.com", chat_room_id, "older room gets a message")

    async with session_factory() as s:
        listing = await chat_room_service.get_chat_room_list(s, "a@x.com", 1, 10)
    assert [item.chat_room_id for item in listing.chat_room_list] == [chat_room_id, newer_room_id]


async def test_send_chat_rejects_outsider(session_factory, members, chat_room_id, published):
    async with session_factory() as s:
        with pytest.raises(BadRequestException) as exc_info:
            await ChatService.send_chat(s, "c@x.com", chat_room_id, "hi")
    assert exc_info.value.error_code is ErrorCode.NOT_CHAT_ROOM_MEMBER
    assert published == []

    async with session_factory() as s:
        chats = (await s.execute(select(Chat))).scalars().all()
    assert chats == []


async def test_send_chat_rejects_blank_message(session_factory, members, chat_room_id):
    async with session_factory() as s:
        with pytest.raises(BadRequestException) as exc_info:
            await ChatService.send_chat(s, "a@x.com", chat_room_id, "   ")
    assert exc_info.value.error_code is ErrorCode.EMPTY_CHAT_MESSAGE


async def test_send_chat_unknown_room(session_factory, members):
    async with session_factory() as s:
        with pytest.raises(NotFoundException):
            await ChatService.send_chat(s, "a@x.com", 4242, "hi")


async def test_send_chat_survives_publish_failure(session_factory, members, chat_room_id, monkeypatch):
    from theham.db.database_redis import RedisManager

    async def broken_publish(receiver_id, payload):
        raise ConnectionError("redis down")

    monkeypatch.setattr(RedisManager, "publish_chat_notification", staticmethod(broken_publish))

    async with session_factory() as s:
        chat = await ChatService.send_chat(s, "a@x.com", chat_room_id, "still stored")

    async with session_factory() as s:
        stored = await s.get(Chat, chat.id)
    assert stored.message == "still stored"


# --- 웹소켓 메시지 처리 ---

async def test_process_message_stores_chat(session_factory, members, chat_room_id):
    chat = await ChatService.process_message(
        "a@x.com", chat_room_id, json.dumps({"message": "웹소켓 메시지"}), session_factory
    )
    assert chat is not None
    assert chat.message == "웹소켓 메시지"


@pytest.mark.parametrize(
    "raw_data",
    [
        "not json",
        json.dumps(["list"]),
        json.dumps({"type": "PING"}),
        json.dumps({"text": "missing message field"}),
        json.dumps({"message": ""}),
    ],
)
async def test_process_message_ignores_invalid_payloads(session_factory, members, chat_room_id, raw_data):
    assert await ChatService.process_message("a@x.com", chat_room_id, raw_data, session_factory) is None

    async with session_factory() as s:
        chats = (await s.execute(select(Chat))).scalars().all()
    assert chats == []


async def test_process_message_outsider_is_ignored(session_factory, members, chat_room_id):
    raw_data = json.dumps({"message": "hi"})
    assert await ChatService.process_message("c@x.com", chat_room_id, raw_data, session_factory) is None


class FakeWebSocket:
    def __init__(self, fail=False):
        self.accepted = False
        self.sent = []
        self.fail = fail

    async def accept(self):
        self.accepted = True

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("closed")
        self.sent.append(message)


async def test_chat_manager_broadcasts_per_room():
    chat_manager = ChatManager()
    first, second, elsewhere, broken = FakeWebSocket(), FakeWebSocket(), FakeWebSocket(), FakeWebSocket(fail=True)
    await chat_manager.connect(1, first)
    await chat_manager.connect(1, second)
    await chat_manager.connect(1, broken)
    await chat_manager.connect(2, elsewhere)

    await chat_manager.broadcast({"message": "hi"}, 1)

    assert first.accepted and second.accepted
    assert first.sent == second.sent == [{"message": "hi"}]
    assert elsewhere.sent == []
    # 전송 실패한 소켓은 정리됨
    assert broken not in chat_manager.active_connections[1]

    chat_manager.disconnect(1, first)
    chat_manager.disconnect(1, second)
    assert 1 not in chat_manager.active_connections


def test_websocket_requires_token():
    client = TestClient(app)
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/v1/chat/ws/1"):
            pass
    assert exc_info.value.code == status.WS_1008_POLICY_VIOLATION


def test_websocket_rejects_invalid_token():
    client = TestClient(app)
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/v1/chat/ws/1?token=garbage"):
            pass
    assert exc_info.value.code == status.WS_1008_POLICY_VIOLATION


# --- 메시지 길이 제한 ---

async def test_send_chat_rejects_message_over_limit(session_factory, members, chat_room_id, published):
    async with session_factory() as s:
        with pytest.raises(BadRequestException) as exc_info:
            await ChatService.send_chat(s, "a@x.com", chat_room_id, "x" * (MAX_CHAT_LENGTH + 1))
    assert exc_info.value.error_code is ErrorCode.CHAT_MESSAGE_TOO_LONG
    assert published == []


async def test_send_chat_accepts_message_at_limit(session_factory, members, chat_room_id):
    async with session_factory() as s:
        chat = await ChatService.send_chat(s, "a@x.com", chat_room_id, "x" * MAX_CHAT_LENGTH)

    async with session_factory() as s:
        room = await s.get(ChatRoom, chat_room_id)
    assert len(room.last_chat) == MAX_CHAT_LENGTH
    assert chat.message == room.last_chat


async def test_process_message_over_limit_is_ignored(session_factory, members, chat_room_id):
    raw_data = json.dumps({"message": "x" * 5000})
    assert await ChatService.process_message("a@x.com", chat_room_id, raw_data, session_factory) is None

    async with session_factory() as s:
        chats = (await s.execute(select(Chat))).scalars().all()
        room = await s.get(ChatRoom, chat_room_id)
    assert chats == []
    assert room.last_chat is None
    assert room.receiver_unread_count == 0


# --- 동시 전송 시 카운터 ---

async def test_send_chat_reloads_room_loaded_earlier_in_session(session_factory, members, chat_room_id):
    async with session_factory() as s:
        # 이 세션이 방을 먼저 읽어 둔 뒤 다른 세션에서 메시지가 저장됨
        stale_room = await s.get(ChatRoom, chat_room_id)
        assert stale_room.receiver_unread_count == 0

        async with session_factory() as other:
            await ChatService.send_chat(other, "a@x.com", chat_room_id, "first")

        await ChatService.send_chat(s, "a@x.com", chat_room_id, "second")

    async with session_factory() as s:
        room = await s.get(ChatRoom, chat_room_id)
    assert room.receiver_unread_count == 2
    assert room.last_chat == "second"


# --- 웹소켓 엔드포인트 ---

class ScriptedWebSocket(FakeWebSocket):
    """받을 메시지를 순서대로 돌려주고, 다 떨어지면 연결 종료를 알립니다."""

    def __init__(self, incoming=()):
        super().__init__()
        self.incoming = list(incoming)
        self.close_code = None

    async def receive_text(self):
        if not self.incoming:
            raise WebSocketDisconnect(code=status.WS_1000_NORMAL_CLOSURE)
        return self.incoming.pop(0)

    async def close(self, code=status.WS_1000_NORMAL_CLOSURE, reason=None):
        self.close_code = code


@pytest.fixture
def chat_manager(monkeypatch):
    chat_manager = ChatManager()
    monkeypatch.setattr(chat_module, "manager", chat_manager)
    return chat_manager


async def test_websocket_participant_message_is_stored_and_broadcast(
    session_factory, members, chat_room_id, chat_manager, published
):
    _, b, _ = members
    listener = FakeWebSocket()
    await chat_manager.connect(chat_room_id, listener)

    socket = ScriptedWebSocket([json.dumps({"type": "PING"}), json.dumps({"message": "텐트 아직 있나요?"})])
    await chat_endpoint(socket, chat_room_id, token=create_access_token({"sub": "a@x.com"}))

    assert socket.accepted
    assert [message["message"] for message in socket.sent] == ["텐트 아직 있나요?"]
    assert listener.sent == socket.sent
    assert socket not in chat_manager.active_connections[chat_room_id]

    async with session_factory() as s:
        chats = (await s.execute(select(Chat))).scalars().all()
        room = await s.get(ChatRoom, chat_room_id)
    assert [chat.message for chat in chats] == ["텐트 아직 있나요?"]
    assert room.receiver_unread_count == 1
    assert [receiver_id for receiver_id, _ in published] == [b.id]


async def test_websocket_rejects_non_participant(session_factory, members, chat_room_id, chat_manager):
    socket = ScriptedWebSocket([json.dumps({"message": "hi"})])
    await chat_endpoint(socket, chat_room_id, token=create_access_token({"sub": "c@x.com"}))

    assert socket.close_code == status.WS_1008_POLICY_VIOLATION
    assert not socket.accepted
    assert chat_manager.active_connections == {}

    async with session_factory() as s:
        chats = (await s.execute(select(Chat))).scalars().all()
    assert chats == []


async def test_websocket_unknown_room_is_rejected(session_factory, members, chat_manager):
    socket = ScriptedWebSocket()
    await chat_endpoint(socket, 4242, token=create_access_token({"sub": "a@x.com"}))
    assert socket.close_code == status.WS_1008_POLICY_VIOLATION


async def test_websocket_unexpected_error_releases_connection(
    session_factory, members, chat_room_id, chat_manager, monkeypatch
):
    async def failing_process_message(email, chat_room_id, raw_data, session_factory=None):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(ChatService, "process_message", staticmethod(failing_process_message))

    socket = ScriptedWebSocket([json.dumps({"message": "hi"}), json.dumps({"message": "never read"})])
    await chat_endpoint(socket, chat_room_id, token=create_access_token({"sub": "a@x.com"}))

    assert socket.accepted
    assert chat_manager.active_connections == {}
    # 에러 이후 더 이상 수신하지 않음
    assert socket.incoming == [json.dumps({"message": "never read"})]
