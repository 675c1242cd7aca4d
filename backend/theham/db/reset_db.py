import asyncio
import logging

from theham.db.database import engine, Base, AsyncSessionLocal, seed_test_data, transactional
from theham.db.models import member, rental, chat_room, chat  # 모든 모델 로드

logger = logging.getLogger(__name__)

async def reset_database():
    """모든 테이블을 지우고 다시 만든 뒤 테스트 데이터를 넣습니다. (개발용)"""
    logger.info("--- 데이터베이스 초기화 및 리셋 시작 ---")
    async with engine.begin() as conn:
        logger.info("1. 기존 모든 테이블 삭제 중...")
        await conn.run_sync(Base.metadata.drop_all)
        logger.info("2. 최신 스키마로 테이블 생성 중...")
        await conn.run_sync(Base.metadata.create_all)

    logger.info("3. 테스트 데이터 시딩(Seeding) 중...")
    async with AsyncSessionLocal() as session:
        async with transactional(session):
            await seed_test_data(session)
    logger.info("--- 리셋 완료 ---")

    await engine.dispose()

def main():
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    asyncio.run(reset_database())

if __name__ == "__main__":
    main()
