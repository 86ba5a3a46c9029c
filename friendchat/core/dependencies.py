import logging
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from friendchat.auth.security import decode_access_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def identity_from_token(token: str) -> dict:
    """Decode a bearer token into the caller identity used by every route."""
    payload = decode_access_token(token)
    return {"id": payload["sub"], "username": payload.get("username")}


def verify_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return identity_from_token(credentials.credentials)

    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Token expired")

    except jwt.InvalidTokenError as e:
        logger.info(f"jwt_verification_failed error={e}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid token")
