from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from friendchat.core.database import Base
from friendchat.users.models import new_id, utcnow


class Chat(Base):
    """A two-party conversation, stored as a canonically ordered user pair."""

    __tablename__ = "chats"

    id = Column(String(36), primary_key=True, default=new_id)
    user_low_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_high_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user_low = relationship("User", foreign_keys=[user_low_id], lazy="joined")
    user_high = relationship("User", foreign_keys=[user_high_id], lazy="joined")
    messages = relationship(
        "Message",
        back_populates="chat",
        cascade="all, delete-orphan",
        order_by=lambda: (Message.created_at, Message.id),
    )

    __table_args__ = (
        # Ensure only one chat per user pair
        UniqueConstraint("user_low_id", "user_high_id", name="uq_chats_pair"),
        CheckConstraint("user_low_id < user_high_id", name="ck_chats_canonical_order"),
    )

    @property
    def participants(self):
        return [self.user_low, self.user_high]

    def has_participant(self, user_id: str) -> bool:
        return user_id in (self.user_low_id, self.user_high_id)


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=new_id)
    chat_id = Column(
        String(36), ForeignKey("chats.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    chat = relationship("Chat", back_populates="messages")
    author = relationship("User", lazy="joined")
