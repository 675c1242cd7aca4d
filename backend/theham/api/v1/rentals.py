from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from theham.core.security import get_current_member_email
from theham.db.database import get_db
from theham.schemas.rental import (
    RentalCreate,
    RentalCreateResponse,
    RentalListResponse,
    RentalRead,
    RentalUpdate,
)
from theham.services import rental_service

router = APIRouter(prefix="/rentals", tags=["rentals"])

@router.post("", response_model=RentalCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_rental(
    rental_in: RentalCreate,
    email: str = Depends(get_current_member_email),
    db: AsyncSession = Depends(get_db)
):
    """함께쓰기 게시글 등록"""
    rental = await rental_service.create_rental(db, email, rental_in)
    return RentalCreateResponse(id=rental.id)

@router.get("", response_model=RentalListResponse)
async def read_rental_list(
    page: int = Query(1),
    size: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    """함께쓰기 게시글 목록 (최신 순)"""
    return await rental_service.read_rental_list(db, page, size)

@router.get("/{rental_id}", response_model=RentalRead)
async def read_rental(rental_id: int, db: AsyncSession = Depends(get_db)):
    """함께쓰기 게시글 조회"""
    return await rental_service.read_rental(db, rental_id)

@router.put("/{rental_id}", response_model=RentalRead)
async def update_rental(
    rental_id: int,
    rental_in: RentalUpdate,
    email: str = Depends(get_current_member_email),
    db: AsyncSession = Depends(get_db)
):
    """함께쓰기 게시글 수정 (작성자만)"""
    return await rental_service.update_rental(db, email, rental_id, rental_in)

@router.delete("/{rental_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_rental(
    rental_id: int,
    email: str = Depends(get_current_member_email),
    db: AsyncSession = Depends(get_db)
):
    """함께쓰기 게시글 삭제 (작성자만)"""
    await rental_service.delete_rental(db, email, rental_id)
    return None
