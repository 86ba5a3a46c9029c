import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from friendchat.core.database import get_db
from friendchat.core.dependencies import verify_token
from friendchat.users.models import User
from .crud import find_or_create_chat
from .schemas import ChatModel


logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/find/{friend_id}", response_model=ChatModel, status_code=200)
def find_chat(
    friend_id: str,
    user=Depends(verify_token),
    db: Session = Depends(get_db),
):
    """
    Get or create the direct (1-on-1) chat with another user.

    If a chat between the two users already exists it is returned with its
    full message history, oldest first. Otherwise a new chat is created and
    returned with an empty history.

    **Path Parameters**
    - `friend_id`: id of the other participant

    **Returns**
    - `id`, `createdAt`
    - `participants`: both users (id, username, avatarUrl)
    - `messages`: id, chatId, authorId, content, createdAt and the author summary

    **Errors**
    - 400: Attempt to open a chat with yourself
    - 404: No user with that id
    - 500: Database error
    """
    if friend_id == user["id"]:
        raise HTTPException(status_code=400, detail="You cannot open a chat with yourself.")

    try:
        if db.get(User, friend_id) is None:
            raise HTTPException(status_code=404, detail="User not found.")

        return find_or_create_chat(db, user["id"], friend_id)

    except HTTPException:
        raise
    except SQLAlchemyError:
        db.rollback()
        logger.exception("chat_find_failed")
        raise HTTPException(status_code=500, detail="Could not find or create chat.")
