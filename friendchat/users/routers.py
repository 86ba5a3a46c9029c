import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from friendchat.core.database import get_db
from friendchat.core.dependencies import verify_token
from .models import User
from .schemas import UserSummary


logger = logging.getLogger(__name__)
router = APIRouter()

SEARCH_LIMIT = 10


@router.get("/find", response_model=List[UserSummary], status_code=200)
def find_users(
    username: Optional[str] = None,
    user=Depends(verify_token),
    db: Session = Depends(get_db),
):
    """
    Search for other users by username.

    Case-insensitive substring match, ordered alphabetically, never including
    the caller. Returns at most 10 users.

    **Errors**
    - `400`: The `username` query parameter is missing.
    - `500`: Unexpected database error.
    """
    if username is None:
        raise HTTPException(
            status_code=400, detail="Username query parameter is required."
        )

    try:
        return (
            db.query(User)
            .filter(User.username.icontains(username, autoescape=True))
            .filter(User.id != user["id"])
            .order_by(User.username)
            .limit(SEARCH_LIMIT)
            .all()
        )
    except SQLAlchemyError:
        logger.exception("user_search_failed")
        raise HTTPException(status_code=500, detail="Something went wrong.")
