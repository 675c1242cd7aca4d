from passlib.context import CryptContext
import os
from datetime import datetime, timedelta
from jose import jwt, JWTError
from typing import Optional
from fastapi import WebSocket, HTTPException, status
from dotenv import load_dotenv

load_dotenv()

# 1. 비밀번호 암호화 설정
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# JWT 설정
SECRET_KEY = os.getenv("SECRET_KEY", "your-secret-key-very-secret")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24))  # 기본 1일

# --- 인증 관련 함수 ---

def get_password_hash(password: str) -> str:
    """비밀번호를 해시화합니다. (bcrypt 는 72바이트까지만 사용)"""
    return pwd_context.hash(password[:72])

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """평문 비밀번호와 해시된 비밀번호를 비교합니다."""
    return pwd_context.verify(plain_password[:72], hashed_password)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    """JWT 액세스 토큰을 생성합니다. sub 에는 회원 이메일이 들어갑니다."""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=15))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

# --- HTTP API 검증 함수 ---
from fastapi.security import OAuth2PasswordBearer
from fastapi import Depends

# 토큰을 얻어올 엔드포인트 URL 설정 (Swagger UI 인증에 사용)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/v1/members/login")

def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

def verify_token(token: str) -> str:
    """
    JWT 토큰을 디코딩하고 유효성을 검증한 뒤 회원 이메일을 반환합니다.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise _credentials_exception()

    email: Optional[str] = payload.get("sub")
    if email is None:
        raise _credentials_exception()
    return email

async def get_current_member_email(token: str = Depends(oauth2_scheme)) -> str:
    """
    FastAPI Dependency: 헤더에서 토큰을 추출하고 검증하여 이메일을 반환합니다.
    """
    return verify_token(token)

# --- 웹소켓 검증 함수 ---

async def verify_websocket_token(websocket: WebSocket, token: Optional[str]) -> Optional[str]:
    """
    WebSocket 연결 시 쿼리 파라미터 token 을 검증합니다.
    실패하면 정책 위반 코드로 연결을 닫고 None 을 반환합니다.
    """
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None
    try:
        return verify_token(token)
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None
