import math
from dataclasses import dataclass, field
from typing import Generic, List, TypeVar

from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


@dataclass(frozen=True)
class PageRequest:
    """
    0부터 시작하는 페이지 인덱스와 페이지 크기.
    API 의 1-based 페이지 번호는 of() 로 변환합니다. (1 이하는 첫 페이지)
    """
    index: int
    size: int

    @classmethod
    def of(cls, page: int, size: int) -> "PageRequest":
        return cls(index=max(page - 1, 0), size=max(size, 1))

    @property
    def offset(self) -> int:
        return self.index * self.size


@dataclass
class Page(Generic[T]):
    content: List[T] = field(default_factory=list)
    total_elements: int = 0
    index: int = 0
    size: int = 1

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_elements / self.size) if self.size else 0

    @property
    def number(self) -> int:
        """1-based 현재 페이지 번호"""
        return self.index + 1


async def fetch_page(db: AsyncSession, stmt: Select, count_stmt: Select, page_request: PageRequest) -> Page:
    """
    정렬까지 끝난 select 문과 같은 조건의 count 문을 받아 해당 페이지를 조회합니다.
    """
    total = (await db.execute(count_stmt)).scalar_one()

    result = await db.execute(stmt.offset(page_request.offset).limit(page_request.size))
    return Page(
        content=list(result.scalars().all()),
        total_elements=total,
        index=page_request.index,
        size=page_request.size,
    )
