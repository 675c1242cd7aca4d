import logging

from sqlalchemy.ext.asyncio import AsyncSession

from theham.core.exceptions import BadRequestException, ErrorCode
from theham.db.database import transactional
from theham.db.models.rental import Rental
from theham.repositories.pagination import PageRequest
from theham.repositories.rental_repository import RentalRepository
from theham.schemas.rental import RentalCreate, RentalListResponse, RentalRead, RentalUpdate
from theham.services.chat_room_service import find_member_by_email, find_rental_by_id

logger = logging.getLogger(__name__)


async def create_rental(db: AsyncSession, email: str, rental_in: RentalCreate) -> Rental:
    async with transactional(db):
        member = await find_member_by_email(db, email)
        rental = await RentalRepository.save(db, Rental(member=member, **rental_in.model_dump()))
    logger.info(f"[RentalService] 게시글 등록 (Rental {rental.id}, Member {member.id})")
    return rental


async def read_rental(db: AsyncSession, rental_id: int) -> RentalRead:
    rental = await find_rental_by_id(db, rental_id)
    return RentalRead.from_rental(rental)


async def read_rental_list(db: AsyncSession, page: int, size: int) -> RentalListResponse:
    rental_page = await RentalRepository.find_all(db, PageRequest.of(page, size))
    return RentalListResponse(
        total_pages=rental_page.total_pages,
        current_page=rental_page.number,
        rental_list=[RentalRead.from_rental(rental) for rental in rental_page.content],
    )


async def update_rental(db: AsyncSession, email: str, rental_id: int, rental_in: RentalUpdate) -> RentalRead:
    async with transactional(db):
        rental = await find_rental_by_id(db, rental_id)
        member = await find_member_by_email(db, email)
        _check_owner(rental, member.id)

        rental.update(**rental_in.model_dump())
        await db.flush()
        return RentalRead.from_rental(rental)


async def delete_rental(db: AsyncSession, email: str, rental_id: int):
    """
    게시글 삭제. 채팅방은 지우지 않으므로 채팅방이 걸린 게시글은 삭제할 수 없습니다.
    """
    async with transactional(db):
        rental = await find_rental_by_id(db, rental_id)
        member = await find_member_by_email(db, email)
        _check_owner(rental, member.id)

        if await RentalRepository.has_chat_rooms(db, rental):
            raise BadRequestException(ErrorCode.RENTAL_HAS_CHAT_ROOMS)

        await RentalRepository.delete(db, rental)
    logger.info(f"[RentalService] 게시글 삭제 (Rental {rental_id}, Member {member.id})")


def _check_owner(rental: Rental, member_id: int):
    if rental.member_id != member_id:
        logger.error(f"[RentalService] 작성자가 아닙니다. rental: {rental.id}, member: {member_id}")
        raise BadRequestException(ErrorCode.NOT_RENTAL_OWNER)
