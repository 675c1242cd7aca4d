from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import List, Optional

class RentalBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    category: str = Field(..., min_length=1, max_length=50)
    content: str = Field(..., min_length=1)
    rental_fee: int = Field(0, ge=0)
    deposit: int = Field(0, ge=0)
    district: Optional[str] = None

class RentalCreate(RentalBase):
    pass

class RentalUpdate(RentalBase):
    pass

class RentalCreateResponse(BaseModel):
    id: int

class RentalRead(RentalBase):
    id: int
    member_id: int
    nickname: str
    profile_url: Optional[str] = None
    created_at: datetime
    modified_at: datetime

    @classmethod
    def from_rental(cls, rental) -> "RentalRead":
        return cls(
            id=rental.id,
            member_id=rental.member_id,
            nickname=rental.member.nickname,
            profile_url=rental.member.profile_url,
            title=rental.title,
            category=rental.category,
            content=rental.content,
            rental_fee=rental.rental_fee,
            deposit=rental.deposit,
            district=rental.district,
            created_at=rental.created_at,
            modified_at=rental.modified_at,
        )

class RentalListResponse(BaseModel):
    total_pages: int
    current_page: int
    rental_list: List[RentalRead]
