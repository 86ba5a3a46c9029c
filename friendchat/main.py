import os
import logging
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .auth import routers as auth_router
from .users import routers as users_router
from .friendship import routers as friend_router
from .chat import routers as chat_router
from .chat import realtime

from .core.config import (
    CORS_ORIGINS,
    DEFAULT_JWT_SECRET,
    HOST,
    JWT_SECRET,
    LOG_JSON,
    LOG_LEVEL,
    PORT,
    PROJECT_NAME,
    UPLOAD_DIR,
    UPLOAD_URL_PATH,
)
from .core.database import init_db
from .core.middleware import logging_middleware
from .utils.logging_config import setup_logging

load_dotenv()
setup_logging(LOG_LEVEL, json_logs=LOG_JSON)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if JWT_SECRET == DEFAULT_JWT_SECRET:
        logger.warning("jwt_secret_default tokens are signed with a public secret, set JWT_SECRET")
    logger.info(f"{PROJECT_NAME}_started uploads={UPLOAD_DIR}")
    yield


app = FastAPI(title=PROJECT_NAME, lifespan=lifespan)
app.include_router(auth_router.router, tags=["Authentication"])
app.include_router(users_router.router, prefix="/users", tags=["Users"])
app.include_router(friend_router.router, prefix="/friends", tags=["Friendship"])
app.include_router(chat_router.router, prefix="/chats", tags=["Chat"])
app.include_router(realtime.router, tags=["Realtime"])

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["*"],
)
app.middleware("http")(logging_middleware)

# Uploaded avatars are public
os.makedirs(UPLOAD_DIR, exist_ok=True)
app.mount(UPLOAD_URL_PATH, StaticFiles(directory=UPLOAD_DIR), name="uploads")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report missing or malformed input as 400 instead of FastAPI's 422."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


def run():
    uvicorn.run(app, host=HOST, port=PORT, log_config=None)
