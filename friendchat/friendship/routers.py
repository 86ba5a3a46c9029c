import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from friendchat.core.database import get_db
from friendchat.core.dependencies import verify_token
from friendchat.users.models import User
from friendchat.users.schemas import UserSummary
from .models import Friendship, FriendshipStatus
from .schemas import (
    FriendRequestModel,
    FriendshipModel,
    PendingFriendRequestModel,
    RespondFriendRequestModel,
)


logger = logging.getLogger(__name__)
router = APIRouter()

RESPONSE_STATUSES = {FriendshipStatus.ACCEPTED.value, FriendshipStatus.DECLINED.value}


@router.post("/request", response_model=FriendshipModel, status_code=201)
def request_friend(
    data: FriendRequestModel,
    user=Depends(verify_token),
    db: Session = Depends(get_db),
):
    """
    Send a friend request to another user.

    **Input**
    - `receiverId`: The id of the user to befriend.

    **Process**
    1. Prevent self–friend-requests.
    2. Validate that the receiver exists.
    3. Insert a `PENDING` friendship. The canonical (low, high) pair is unique,
       so a request in either direction between the same users is refused by
       the insert itself.

    **Errors**
    - `400`: Attempt to send a friend request to yourself.
    - `404`: No user with the given id.
    - `409`: A request or friendship already exists between the two users.
    - `500`: Unexpected database error.
    """
    requester_id = user["id"]
    receiver_id = data.receiver_id

    # Prevent sending to self
    if requester_id == receiver_id:
        raise HTTPException(400, detail="You cannot send a friend request to yourself.")

    if db.get(User, receiver_id) is None:
        raise HTTPException(404, detail="User not found.")

    # Canonical ordering (must match the CHECK constraint)
    user_low_id, user_high_id = sorted([requester_id, receiver_id])

    friendship = Friendship(
        requester_id=requester_id,
        receiver_id=receiver_id,
        status=FriendshipStatus.PENDING,
        user_low_id=user_low_id,
        user_high_id=user_high_id,
    )

    try:
        db.add(friendship)
        db.commit()
        db.refresh(friendship)

    except IntegrityError:
        db.rollback()
        raise HTTPException(409, detail="A friend request or friendship already exists.")

    except SQLAlchemyError:
        db.rollback()
        logger.exception("friend_request_failed")
        raise HTTPException(500, detail="Something went wrong.")

    logger.info(f"friend_request_sent requester={requester_id}, receiver={receiver_id}")

    return friendship


@router.put("/respond", response_model=FriendshipModel, status_code=200)
def respond_friend(
    data: RespondFriendRequestModel,
    user=Depends(verify_token),
    db: Session = Depends(get_db),
):
    """
    Accept or decline a friend request.

    Only the receiver of the request can respond: the update is scoped to rows
    where the caller is the receiver, so anyone else matches nothing.

    **Input**
    - `friendshipId`: The request to respond to.
    - `status`: `ACCEPTED` or `DECLINED`.

    **Errors**
    - `400`: Invalid status.
    - `404`: No request with that id addressed to the caller.
    - `500`: Unexpected database error.
    """
    if data.status not in RESPONSE_STATUSES:
        raise HTTPException(400, detail="Invalid status.")

    new_status = FriendshipStatus(data.status)

    try:
        updated = (
            db.query(Friendship)
            .filter(Friendship.id == data.friendship_id)
            .filter(Friendship.receiver_id == user["id"])
            .update({Friendship.status: new_status}, synchronize_session=False)
        )
        db.commit()

    except SQLAlchemyError:
        db.rollback()
        logger.exception("friend_respond_failed")
        raise HTTPException(500, detail="Could not update request.")

    if not updated:
        raise HTTPException(404, detail="Friend request not found.")

    logger.info(
        f"friend_request_{new_status.value.lower()} friendship={data.friendship_id}, receiver={user['id']}"
    )

    return db.get(Friendship, data.friendship_id, populate_existing=True)


@router.get("/pending", response_model=List[PendingFriendRequestModel], status_code=200)
def pending_requests(user=Depends(verify_token), db: Session = Depends(get_db)):
    """List the pending friend requests addressed to the caller, with the requester."""
    try:
        return (
            db.query(Friendship)
            .filter(Friendship.receiver_id == user["id"])
            .filter(Friendship.status == FriendshipStatus.PENDING)
            .order_by(Friendship.created_at)
            .all()
        )
    except SQLAlchemyError:
        logger.exception("friend_pending_failed")
        raise HTTPException(500, detail="Could not fetch pending requests.")


@router.get("/all", response_model=List[UserSummary], status_code=200)
def all_friends(user=Depends(verify_token), db: Session = Depends(get_db)):
    """List the caller's accepted friends, each resolved to the other user."""
    user_id = user["id"]

    try:
        friendships = (
            db.query(Friendship)
            .filter(Friendship.status == FriendshipStatus.ACCEPTED)
            .filter(
                or_(
                    Friendship.requester_id == user_id,
                    Friendship.receiver_id == user_id,
                )
            )
            .order_by(Friendship.created_at)
            .all()
        )
    except SQLAlchemyError:
        logger.exception("friend_list_failed")
        raise HTTPException(500, detail="Could not fetch friends.")

    return [friendship.other_user(user_id) for friendship in friendships]
