import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from friendchat.core.database import get_db
from friendchat.core.dependencies import verify_token
from friendchat.users.models import User
from friendchat.users.schemas import UserPublic
from friendchat.utils.uploads import remove_upload, save_avatar
from .schemas import AuthResponseModel, UserLoginModel
from .security import create_access_token, hash_password, verify_password


logger = logging.getLogger(__name__)
router = APIRouter()


def auth_response(user: User) -> dict:
    return {
        "user": UserPublic.model_validate(user),
        "token": create_access_token(user.id, user.username),
    }


@router.post("/signup", response_model=AuthResponseModel, status_code=201)
def signup(
    username: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    avatar: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
):
    """
    Register a new user.

    Accepts a multipart form so an avatar image can be uploaded together with
    the account details. The password is stored as a bcrypt hash and is never
    returned.

    **Input Fields**
    - **username**: Must not already be taken.
    - **email**: Must not already be registered.
    - **password**: Any non-empty string.
    - **avatar** (optional): png, jpg, jpeg, gif or webp image up to 5 MB.

    **Returns**
    - `user`: The new user without its password hash.
    - `token`: A bearer token valid for one day.

    **Errors**
    - 400: Missing field or rejected avatar
    - 409: Username or email already exists
    - 500: Unexpected database error
    """
    username, email = username.strip(), email.strip()
    if not username or not email or not password:
        raise HTTPException(
            status_code=400, detail="Username, email, and password are required."
        )

    avatar_path, avatar_url = None, None
    if avatar is not None and avatar.filename:
        avatar_path, avatar_url = save_avatar(avatar)

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        avatar_url=avatar_url,
    )

    try:
        db.add(user)
        db.commit()
        db.refresh(user)

    except IntegrityError:
        db.rollback()
        remove_upload(avatar_path)
        logger.info(f"user_signup_conflict email={email}, username={username}")
        raise HTTPException(status_code=409, detail="Username or email already exists.")

    except SQLAlchemyError:
        db.rollback()
        remove_upload(avatar_path)
        logger.exception("user_signup_failed")
        raise HTTPException(status_code=500, detail="Something went wrong.")

    logger.info(f"user_signup_success email={email}, username={username}")

    return auth_response(user)


@router.post("/login", response_model=AuthResponseModel, status_code=200)
def login(user_data: UserLoginModel, db: Session = Depends(get_db)):
    """
    Authenticate a user with email and password.

    **Returns**
    - `user`: The authenticated user without its password hash.
    - `token`: A fresh bearer token valid for one day.

    **Errors**
    - 400: Email or password missing
    - 404: No user with that email
    - 401: Wrong password
    - 500: Unexpected database error
    """
    try:
        user = db.query(User).filter(User.email == user_data.email).first()
    except SQLAlchemyError:
        logger.exception("user_login_lookup_failed")
        raise HTTPException(status_code=500, detail="Something went wrong.")

    if user is None:
        raise HTTPException(status_code=404, detail="User not found.")

    if not verify_password(user_data.password.get_secret_value(), user.password_hash):
        logger.info(f"user_login_failed email={user_data.email}")
        raise HTTPException(status_code=401, detail="Invalid credentials.")

    logger.info(f"user_login_success email={user_data.email}")

    return auth_response(user)


@router.get("/me", response_model=UserPublic, status_code=200)
def get_me(user=Depends(verify_token), db: Session = Depends(get_db)):
    """Return the authenticated user's own record."""
    me = db.get(User, user["id"])
    if me is None:
        raise HTTPException(status_code=404, detail="User not found.")
    return me
