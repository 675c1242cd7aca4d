from dataclasses import dataclass
from sqlalchemy import Integer, String, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
from typing import Optional, TYPE_CHECKING
from theham.db.database import Base, get_utc_now

if TYPE_CHECKING:
    from theham.db.models.member import Member
    from theham.db.models.rental import Rental

SENDER_UNREAD_COUNT = "sender_unread_count"
RECEIVER_UNREAD_COUNT = "receiver_unread_count"

# last_chat 컬럼 길이이자 메시지 한 건의 최대 길이
MAX_CHAT_LENGTH = 1000

class ChatRoom(Base):
    """
    하나의 함께쓰기 게시글을 두고 구매자(sender)와 판매자(receiver)가 나누는 1:1 대화방.

    sender_unread_count: sender 가 아직 읽지 않은 메시지 수 (receiver 가 보낸 메시지)
    receiver_unread_count: receiver 가 아직 읽지 않은 메시지 수 (sender 가 보낸 메시지)
    """
    __tablename__ = "chat_rooms"
    __table_args__ = (
        # (sender, rental) 당 채팅방은 하나
        UniqueConstraint("sender_id", "rental_id", name="uq_chat_rooms_sender_rental"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    sender_id: Mapped[int] = mapped_column(ForeignKey("members.id"), index=True, nullable=False)
    receiver_id: Mapped[int] = mapped_column(ForeignKey("members.id"), index=True, nullable=False)
    rental_id: Mapped[int] = mapped_column(ForeignKey("rentals.id"), index=True, nullable=False)

    last_chat: Mapped[Optional[str]] = mapped_column(String(MAX_CHAT_LENGTH), nullable=True)
    sender_unread_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    receiver_unread_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=get_utc_now)
    modified_at: Mapped[datetime] = mapped_column(DateTime, default=get_utc_now, onupdate=get_utc_now, index=True)

    sender: Mapped["Member"] = relationship("Member", foreign_keys=[sender_id], lazy="joined")
    receiver: Mapped["Member"] = relationship("Member", foreign_keys=[receiver_id], lazy="joined")
    rental: Mapped["Rental"] = relationship("Rental", lazy="joined")

    def update_chat_room(self, is_sender: bool):
        """방을 연 사람의 안읽은 메시지 수만 0으로 만듭니다. 상대방 카운터는 건드리지 않습니다."""
        if is_sender:
            self.sender_unread_count = 0
        else:
            self.receiver_unread_count = 0

    def update_last_chat(self, message: str, is_sender: bool):
        """새 메시지 도착: 마지막 메시지 갱신 + 상대방의 안읽은 메시지 수 증가"""
        self.last_chat = message
        if is_sender:
            self.receiver_unread_count += 1
        else:
            self.sender_unread_count += 1
        self.modified_at = get_utc_now()

    def is_participant(self, member: "Member") -> bool:
        return member.id in (self.sender_id, self.receiver_id)

    def __repr__(self) -> str:
        return f"<ChatRoom id={self.id} sender={self.sender_id} receiver={self.receiver_id} rental={self.rental_id}>"


@dataclass(frozen=True)
class Participant:
    """채팅방 안에서 특정 멤버의 입장 (나, 상대방, 내 카운터 필드)"""
    viewer: "Member"
    counterpart: "Member"
    is_sender: bool
    unread_field: str

    def unread_count(self, chat_room: ChatRoom) -> int:
        return getattr(chat_room, self.unread_field)


def resolve_participant(chat_room: ChatRoom, member: "Member") -> Participant:
    """
    member 가 채팅방의 최초 발신자(sender)인지에 따라 상대방과 카운터 필드를 결정합니다.
    sender 가 아니면 receiver 쪽으로 취급합니다.
    """
    if chat_room.sender_id == member.id:
        return Participant(
            viewer=member,
            counterpart=chat_room.receiver,
            is_sender=True,
            unread_field=SENDER_UNREAD_COUNT,
        )
    return Participant(
        viewer=member,
        counterpart=chat_room.sender,
        is_sender=False,
        unread_field=RECEIVER_UNREAD_COUNT,
    )
