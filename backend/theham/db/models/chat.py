from sqlalchemy import Integer, Text, ForeignKey, DateTime, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
from typing import TYPE_CHECKING
from theham.db.database import Base, get_utc_now

if TYPE_CHECKING:
    from theham.db.models.member import Member

class Chat(Base):
    __tablename__ = "chats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    chat_room_id: Mapped[int] = mapped_column(ForeignKey("chat_rooms.id"), index=True, nullable=False)
    sender_id: Mapped[int] = mapped_column(ForeignKey("members.id"), index=True, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=get_utc_now, index=True)

    sender: Mapped["Member"] = relationship("Member", lazy="joined")

    def update_is_read(self):
        # 한 번 읽음 처리된 메시지는 다시 안읽음으로 돌아가지 않음
        self.is_read = True
