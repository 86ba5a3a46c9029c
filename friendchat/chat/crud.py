import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .models import Chat, Message

logger = logging.getLogger(__name__)


def get_chat_between(db: Session, user_id: str, other_id: str) -> Optional[Chat]:
    user_low_id, user_high_id = sorted([user_id, other_id])
    return (
        db.query(Chat)
        .filter(Chat.user_low_id == user_low_id)
        .filter(Chat.user_high_id == user_high_id)
        .first()
    )


def find_or_create_chat(db: Session, user_id: str, friend_id: str) -> Chat:
    """
    Return the chat between two users, creating it on first contact.

    The (low, high) pair is unique, so when two first contacts race the loser's
    insert fails and the winner's chat is returned instead.
    """
    chat = get_chat_between(db, user_id, friend_id)
    if chat is not None:
        return chat

    user_low_id, user_high_id = sorted([user_id, friend_id])
    chat = Chat(user_low_id=user_low_id, user_high_id=user_high_id)

    try:
        db.add(chat)
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(f"chat_create_lost_race users={user_low_id},{user_high_id}")
        chat = get_chat_between(db, user_id, friend_id)
        if chat is None:
            raise
        return chat

    db.refresh(chat)
    logger.info(f"chat_created id={chat.id} users={user_low_id},{user_high_id}")
    return chat


def create_message(db: Session, chat_id: str, author_id: str, content: str) -> Message:
    message = Message(chat_id=chat_id, author_id=author_id, content=content)
    db.add(message)
    db.commit()
    db.refresh(message)
    return message
