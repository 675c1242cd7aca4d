# backend/theham/api/v1/members.py
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession
from theham.core.exceptions import ErrorCode
from theham.core.security import get_current_member_email
from theham.db.database import get_db
from theham.schemas.member import MemberCreate, MemberLogin, MemberRead, Token
from theham.services import member_service
from theham.services.chat_room_service import find_member_by_email

router = APIRouter()

def _login_failed() -> HTTPException:
    return HTTPException(
        status_code=ErrorCode.INVALID_LOGIN.status_code,
        detail=ErrorCode.INVALID_LOGIN.message,
        headers={"WWW-Authenticate": "Bearer"},
    )

@router.post("/signup", response_model=MemberRead, status_code=status.HTTP_201_CREATED)
async def signup(member_in: MemberCreate, db: AsyncSession = Depends(get_db)):
    """회원가입 엔드포인트: 서비스로 로직 위임"""
    return await member_service.register_member(db, member_in)

@router.post("/login", response_model=Token)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: AsyncSession = Depends(get_db)):
    """
    로그인 엔드포인트 (OAuth2 폼). Swagger UI 의 Authorize 버튼이 사용합니다.
    username 필드에 이메일을 넣습니다.
    """
    try:
        member_in = MemberLogin(email=form_data.username, password=form_data.password)
    except ValueError:
        raise _login_failed()

    auth_result = await member_service.authenticate_member(db, member_in)
    if not auth_result:
        raise _login_failed()
    return auth_result

@router.post("/login/json", response_model=Token)
async def login_json(member_in: MemberLogin, db: AsyncSession = Depends(get_db)):
    """로그인 엔드포인트 (JSON 바디)"""
    auth_result = await member_service.authenticate_member(db, member_in)
    if not auth_result:
        raise _login_failed()
    return auth_result

@router.get("/me", response_model=MemberRead)
async def read_me(email: str = Depends(get_current_member_email), db: AsyncSession = Depends(get_db)):
    """내 정보 조회"""
    return await find_member_by_email(db, email)
