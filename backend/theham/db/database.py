from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator
import logging
import os
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# 데이터베이스 연결 정보 설정
POSTGRES_USER = os.getenv("POSTGRES_USER")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD")
POSTGRES_HOST = os.getenv("POSTGRES_HOST", "db")
POSTGRES_PORT = os.getenv("POSTGRES_PORT", "5432")
POSTGRES_DB = os.getenv("POSTGRES_DB")

# DATABASE_URL 이 있으면 그대로 사용 (로컬 개발/테스트용)
SQLALCHEMY_DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_HOST}:{POSTGRES_PORT}/{POSTGRES_DB}",
)

engine = create_async_engine(
    SQLALCHEMY_DATABASE_URL,
    echo=os.getenv("SQL_ECHO", "false").lower() == "true",
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

class Base(DeclarativeBase):
    pass

def get_utc_now():
    return datetime.now(timezone.utc).replace(tzinfo=None)

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session

@asynccontextmanager
async def transactional(db: AsyncSession):
    """
    하나의 작업 단위를 묶습니다.
    블록이 정상 종료되면 커밋하고, 예외가 발생하면 롤백한 뒤 예외를 그대로 다시 던집니다.
    """
    try:
        yield db
        await db.commit()
    except Exception:
        await db.rollback()
        raise

async def init_db():
    """
    서버 시작 시 테이블을 생성하고, SEED_TEST_DATA=true 이면 테스트 데이터를 시딩합니다.
    """
    # Base.metadata 등록을 위해 모델 임포트
    from theham.db.models import member, rental, chat_room, chat

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if os.getenv("SEED_TEST_DATA", "false").lower() != "true":
        return

    async with AsyncSessionLocal() as session:
        async with transactional(session):
            await seed_test_data(session)
    logger.info("--- 테스트 환경 초기화 완료 (Member/Rental) ---")

async def seed_test_data(session: AsyncSession):
    from sqlalchemy import select
    from theham.db.models.member import Member
    from theham.db.models.rental import Rental
    from theham.core.security import get_password_hash

    test_hashed_pwd = get_password_hash("password123")

    async def create_test_member(email, nickname):
        res = await session.execute(select(Member).where(Member.email == email))
        member_obj = res.scalar_one_or_none()
        if not member_obj:
            logger.info(f"Creating Test Member {email}...")
            member_obj = Member(email=email, nickname=nickname, password=test_hashed_pwd)
            session.add(member_obj)
            await session.flush()
        return member_obj

    seller = await create_test_member("seller@theham.com", "판매자")
    await create_test_member("buyer@theham.com", "구매자")

    res = await session.execute(select(Rental).where(Rental.member_id == seller.id))
    if not res.scalars().first():
        logger.info("Creating Test Rental...")
        session.add(Rental(
            member_id=seller.id,
            title="캠핑 텐트 함께 써요",
            category="CAMPING",
            content="4인용 텐트입니다. 주말 대여 가능합니다.",
            rental_fee=10000,
            deposit=30000,
            district="서울 마포구",
        ))
