# backend/theham/services/member_service.py
import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from theham.core.exceptions import BadRequestException, ErrorCode
from theham.core.security import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    create_access_token,
    get_password_hash,
    verify_password,
)
from theham.db.database import transactional
from theham.db.models.member import Member
from theham.repositories.member_repository import MemberRepository
from theham.schemas.member import MemberCreate, MemberLogin

logger = logging.getLogger(__name__)

async def register_member(db: AsyncSession, member_in: MemberCreate) -> Member:
    """
    회원가입 비즈니스 로직: 이메일/닉네임 중복 확인 및 회원 생성
    """
    async with transactional(db):
        # 1. 이메일, 닉네임 중복 확인
        if await MemberRepository.find_by_email(db, member_in.email):
            raise BadRequestException(ErrorCode.DUPLICATE_EMAIL)
        if await MemberRepository.find_by_nickname(db, member_in.nickname):
            raise BadRequestException(ErrorCode.DUPLICATE_NICKNAME)

        # 2. 새로운 회원 객체 생성 및 비밀번호 해싱
        new_member = Member(
            email=member_in.email,
            nickname=member_in.nickname,
            password=get_password_hash(member_in.password),
            profile_url=member_in.profile_url,
        )

        # 3. DB 저장
        member = await MemberRepository.save(db, new_member)

    logger.info(f"[MemberService] 회원가입 완료 (Member {member.id})")
    return member

async def authenticate_member(db: AsyncSession, member_in: MemberLogin) -> Optional[dict]:
    """
    로그인 비즈니스 로직: 자격 증명 확인 및 토큰 발급
    검증 실패 시 None 을 반환합니다. (라우터에서 예외 처리)
    """
    member = await MemberRepository.find_by_email(db, member_in.email)

    if not member or not verify_password(member_in.password, member.password):
        return None

    access_token = create_access_token(
        data={"sub": member.email},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "member_id": member.id,
        "nickname": member.nickname,
    }
