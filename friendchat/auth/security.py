from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from friendchat.core.config import (
    BCRYPT_ROUNDS,
    JWT_ALGORITHM,
    JWT_EXPIRES_SECONDS,
    JWT_SECRET,
)


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def create_access_token(user_id: str, username: str) -> str:
    """Sign a token identifying ``user_id``; valid for ``JWT_EXPIRES_SECONDS``."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "id": user_id,
        "username": username,
        "iat": now,
        "exp": now + timedelta(seconds=JWT_EXPIRES_SECONDS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Return the token claims.

    Raises ``jwt.InvalidTokenError`` (or its ``ExpiredSignatureError`` subclass)
    when the signature, expiry or required claims do not check out.
    """
    return jwt.decode(
        token,
        JWT_SECRET,
        algorithms=[JWT_ALGORITHM],
        options={"require": ["sub", "exp"]},
    )
