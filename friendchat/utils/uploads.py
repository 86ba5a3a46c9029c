import os
import time
import uuid
import logging
from typing import Optional, Tuple

from fastapi import HTTPException, UploadFile

from friendchat.core.config import PUBLIC_BASE_URL, UPLOAD_DIR, UPLOAD_URL_PATH

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}
MAX_CONTENT_LENGTH = 5 * 1024 * 1024  # 5 MB max upload size


def allowed_file(filename: str) -> bool:
    """Check if the file extension is allowed"""
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


def save_avatar(file: UploadFile) -> Tuple[str, str]:
    """
    Store an uploaded avatar under ``UPLOAD_DIR``.

    Returns the path on disk and the public URL the avatar is served from.
    Raises a 400 for an unsupported extension or an oversized file.
    """
    if not allowed_file(file.filename or ""):
        raise HTTPException(
            status_code=400,
            detail=f"File type not allowed. Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}",
        )

    contents = file.file.read()
    if len(contents) > MAX_CONTENT_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"File size too large. Maximum size: {MAX_CONTENT_LENGTH // 1024 // 1024} MB",
        )

    extension = file.filename.rsplit(".", 1)[1].lower()
    filename = f"avatar-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}.{extension}"

    os.makedirs(UPLOAD_DIR, exist_ok=True)
    path = os.path.join(UPLOAD_DIR, filename)
    with open(path, "wb") as buffer:
        buffer.write(contents)

    logger.info(f"avatar_saved file={filename} bytes={len(contents)}")
    return path, f"{PUBLIC_BASE_URL}{UPLOAD_URL_PATH}/{filename}"


def remove_upload(path: Optional[str]):
    if path and os.path.exists(path):
        os.remove(path)
        logger.info(f"avatar_removed path={path}")
