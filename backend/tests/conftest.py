import os

# 테스트는 PostgreSQL 대신 메모리 SQLite 를 사용합니다. (theham 임포트 전에 설정)
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from theham.core.security import create_access_token, get_password_hash
from theham.db.database import Base, get_db
from theham.db.database_redis import RedisManager
from theham.db.models.chat import Chat
from theham.db.models.chat_room import ChatRoom
from theham.db.models.member import Member
from theham.db.models.rental import Rental
from theham.main import app

TEST_PASSWORD = "password123"
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine, monkeypatch):
    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    # 서비스/웹소켓이 직접 여는 세션도 테스트 DB 를 보도록 교체
    monkeypatch.setattr("theham.services.chat_service.AsyncSessionLocal", factory)
    monkeypatch.setattr("theham.api.v1.chat.AsyncSessionLocal", factory)
    return factory


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def published(monkeypatch):
    """Redis 발행을 가로채서 (receiver_id, payload) 목록에 쌓습니다."""
    sent = []

    async def fake_publish(receiver_id, payload):
        sent.append((receiver_id, payload))
        return 1

    monkeypatch.setattr(RedisManager, "publish_chat_notification", staticmethod(fake_publish))
    return sent


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# --- 데이터 헬퍼 ---

async def create_member(db, email, nickname, profile_url=None) -> Member:
    member = Member(email=email, nickname=nickname, password=TEST_PASSWORD_HASH, profile_url=profile_url)
    db.add(member)
    await db.commit()
    return member


async def create_rental(db, owner: Member, title="캠핑 텐트") -> Rental:
    rental = Rental(
        member_id=owner.id,
        title=title,
        category="CAMPING",
        content="4인용 텐트",
        rental_fee=10000,
        deposit=30000,
    )
    db.add(rental)
    await db.commit()
    return rental


async def add_chats(db, chat_room: ChatRoom, sender: Member, count: int, is_read=False):
    """채팅 메시지를 직접 넣고 채팅방 카운터도 맞춰서 올립니다."""
    is_sender = chat_room.sender_id == sender.id
    chats = []
    for i in range(count):
        chat = Chat(chat_room_id=chat_room.id, sender_id=sender.id, message=f"msg {i}", is_read=is_read)
        db.add(chat)
        chats.append(chat)
        if not is_read:
            chat_room.update_last_chat(chat.message, is_sender)
    await db.commit()
    return chats


def auth_headers(email: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': email})}"}


@pytest.fixture
async def members(db):
    """A(구매자), B(판매자), C(제3자)"""
    a = await create_member(db, "a@x.com", "a-nick", "https://img/a.png")
    b = await create_member(db, "b@x.com", "b-nick", "https://img/b.png")
    c = await create_member(db, "c@x.com", "c-nick")
    return a, b, c


@pytest.fixture
async def rental(db, members):
    _, b, _ = members
    return await create_rental(db, b)
