from sqlalchemy import Integer, String, Text, ForeignKey, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
from typing import Optional, TYPE_CHECKING
from theham.db.database import Base, get_utc_now

if TYPE_CHECKING:
    from theham.db.models.member import Member

class Rental(Base):
    __tablename__ = "rentals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # 게시글 작성자 (함께쓰기 주인)
    member_id: Mapped[int] = mapped_column(ForeignKey("members.id"), index=True, nullable=False)

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    rental_fee: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    deposit: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    district: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=get_utc_now)
    modified_at: Mapped[datetime] = mapped_column(DateTime, default=get_utc_now, onupdate=get_utc_now)

    member: Mapped["Member"] = relationship("Member", lazy="joined")

    def update(self, title: str, category: str, content: str, rental_fee: int, deposit: int, district: Optional[str]):
        self.title = title
        self.category = category
        self.content = content
        self.rental_fee = rental_fee
        self.deposit = deposit
        self.district = district
        self.modified_at = get_utc_now()
