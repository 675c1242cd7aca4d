from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import os
from dotenv import load_dotenv

from pathlib import Path

# 현재 파일(main.py)의 위치: backend/theham/main.py
# 루트 .env 위치: backend/theham/../../.env -> Project Root
env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

from theham.api.v1.routers import api_router
from theham.db.database import init_db
from theham.db.database_redis import RedisManager


app = FastAPI(title="TheHam API")

# CORS (Cross-Origin Resource Sharing) 미들웨어 설정
# 프론트엔드가 다른 도메인에서 API를 호출할 수 있도록 허용합니다.

origins_env = os.getenv("ALLOWED_ORIGINS", "*")
origins = [origin.strip() for origin in origins_env.split(",")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,  # 환경 변수 기반 설정
    allow_credentials=True,
    allow_methods=["*"],  # 모든 HTTP 메서드 허용 (GET, POST 등)
    allow_headers=["*"],  # 모든 헤더 허용
    expose_headers=["Authorization"],
)

# 서버 시작 시 실행되는 이벤트 핸들러
@app.on_event("startup")
async def on_startup():
    """
    서버가 시작될 때 DB 초기화 작업(테이블 생성, 선택적 테스트 데이터 시딩)을 수행합니다.
    """
    await init_db()

# 라우터 등록
app.include_router(api_router)

@app.get("/")
async def root():
    """
    서버 상태 확인용 루트 엔드포인트입니다.
    """
    return {"message": "Welcome to TheHam API"}

@app.get("/ping")
async def ping():
    return {"status": "ok"}

@app.on_event("shutdown")
async def on_shutdown():
    """
    서버 종료 시 리소스를 안전하게 해제합니다.
    """
    await RedisManager.close() # Redis 연결 풀 닫기
