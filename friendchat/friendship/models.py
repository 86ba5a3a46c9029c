import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from friendchat.core.database import Base
from friendchat.users.models import new_id, utcnow


class FriendshipStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"


class Friendship(Base):
    __tablename__ = "friendships"

    id = Column(String(36), primary_key=True, default=new_id)
    requester_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    receiver_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status = Column(
        SQLEnum(FriendshipStatus, name="friendship_status"),
        default=FriendshipStatus.PENDING,
        nullable=False,
    )
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Canonical ordering of the pair: user_low_id < user_high_id
    user_low_id = Column(String(36), nullable=False)
    user_high_id = Column(String(36), nullable=False)

    requester = relationship("User", foreign_keys=[requester_id], lazy="joined")
    receiver = relationship("User", foreign_keys=[receiver_id], lazy="joined")

    __table_args__ = (
        # Prevent (A,B) OR (B,A) duplicates
        UniqueConstraint("user_low_id", "user_high_id", name="uq_friendships_pair"),
        CheckConstraint("user_low_id < user_high_id", name="ck_friendships_canonical_order"),
    )

    def other_user(self, user_id: str):
        return self.receiver if self.requester_id == user_id else self.requester

    def __repr__(self):
        return (
            f"<Friendship(requester_id={self.requester_id}, "
            f"receiver_id={self.receiver_id}, status={self.status})>"
        )
