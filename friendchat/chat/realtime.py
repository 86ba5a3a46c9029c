import json
import logging
from typing import Any, Dict, Optional, Set

import jwt
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from friendchat.core.database import SessionLocal
from friendchat.core.dependencies import identity_from_token
from .crud import create_message
from .models import Chat
from .schemas import MessageModel, SendMessagePayload


logger = logging.getLogger(__name__)
router = APIRouter()

JOIN_ROOM = "joinRoom"
JOINED_ROOM = "joinedRoom"
SEND_MESSAGE = "sendMessage"
RECEIVE_MESSAGE = "receiveMessage"
ERROR = "error"


class ConnectionManager:
    """
    In-memory registry of realtime rooms.

    A room is named by a chat id and holds the websockets subscribed to it.
    Membership belongs to the connection and is dropped on disconnect.
    """

    def __init__(self):
        self.rooms: Dict[str, Set[WebSocket]] = {}

    def join(self, websocket: WebSocket, room: str):
        self.rooms.setdefault(room, set()).add(websocket)

    def disconnect(self, websocket: WebSocket):
        for room in list(self.rooms):
            self.rooms[room].discard(websocket)
            if not self.rooms[room]:
                del self.rooms[room]

    def members(self, room: str) -> Set[WebSocket]:
        return set(self.rooms.get(room, ()))

    async def broadcast(self, room: str, event: str, data: Any) -> int:
        """Send an event to every connection in ``room``; returns how many got it."""
        delivered = 0
        for websocket in self.members(room):
            try:
                await send_event(websocket, event, data)
                delivered += 1
            except (RuntimeError, WebSocketDisconnect):
                logger.warning(f"broadcast_dropped_connection room={room}")
                self.disconnect(websocket)
        return delivered


manager = ConnectionManager()


async def send_event(websocket: WebSocket, event: str, data: Any):
    await websocket.send_json({"event": event, "data": data})


async def send_error(websocket: WebSocket, detail: str):
    await send_event(websocket, ERROR, {"detail": detail})


def participant_chat(db: Session, chat_id: Any, user_id: str) -> Optional[Chat]:
    """Return the chat only if ``user_id`` takes part in it."""
    if not isinstance(chat_id, str) or not chat_id:
        return None
    chat = db.get(Chat, chat_id)
    if chat is None or not chat.has_participant(user_id):
        return None
    return chat


# Blocking database work for one frame. Each call owns a short-lived session
# and runs in the threadpool, so the pooled connection is back before the reply.
def lookup_room(chat_id: Any, user_id: str) -> Optional[str]:
    with SessionLocal() as db:
        chat = participant_chat(db, chat_id, user_id)
        return chat.id if chat is not None else None


def persist_message(payload: SendMessagePayload) -> Optional[Dict[str, Any]]:
    """
    Store a message and return it serialized for ``receiveMessage``.

    Returns None when the author is not a participant of the chat.
    """
    with SessionLocal() as db:
        if participant_chat(db, payload.chat_id, payload.author_id) is None:
            return None
        try:
            message = create_message(db, payload.chat_id, payload.author_id, payload.content)
            return MessageModel.model_validate(message).model_dump(mode="json", by_alias=True)
        except SQLAlchemyError:
            db.rollback()
            raise


async def handle_join_room(websocket: WebSocket, user: dict, data: Any):
    chat_id = await run_in_threadpool(lookup_room, data, user["id"])
    if chat_id is None:
        logger.info(f"ws_join_refused user={user['id']} chat={data}")
        await send_error(websocket, "You are not a participant of this chat.")
        return

    manager.join(websocket, chat_id)
    logger.info(f"ws_joined user={user['id']} chat={chat_id}")
    await send_event(websocket, JOINED_ROOM, chat_id)


async def handle_send_message(websocket: WebSocket, user: dict, data: Any):
    try:
        payload = SendMessagePayload.model_validate(data)
    except ValidationError:
        await send_error(websocket, "chatId, authorId and content are required.")
        return

    if payload.author_id != user["id"]:
        await send_error(websocket, "You can only send messages as yourself.")
        return

    try:
        outgoing = await run_in_threadpool(persist_message, payload)
    except SQLAlchemyError:
        # Not broadcast and not reported to the sender
        logger.exception(f"ws_message_persist_failed chat={payload.chat_id}")
        return

    if outgoing is None:
        await send_error(websocket, "You are not a participant of this chat.")
        return

    delivered = await manager.broadcast(payload.chat_id, RECEIVE_MESSAGE, outgoing)
    logger.info(f"ws_message_sent chat={payload.chat_id} message={outgoing['id']} delivered={delivered}")


HANDLERS = {
    JOIN_ROOM: handle_join_room,
    SEND_MESSAGE: handle_send_message,
}


async def dispatch(websocket: WebSocket, user: dict, raw: str):
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError:
        await send_error(websocket, "Frames must be JSON.")
        return

    if not isinstance(frame, dict) or "event" not in frame:
        await send_error(websocket, "Invalid message format.")
        return

    handler = HANDLERS.get(frame["event"])
    if handler is None:
        await send_error(websocket, f"Unknown event: {frame['event']}")
        return

    await handler(websocket, user, frame.get("data"))


@router.websocket("/ws")
async def realtime_endpoint(websocket: WebSocket, token: Optional[str] = None):
    """
    WebSocket endpoint for chat rooms; authenticated with ``?token=``.

    The connection holds no database session. Each frame opens its own.
    """
    try:
        user = identity_from_token(token or "")
    except jwt.InvalidTokenError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    logger.info(f"ws_connected user={user['id']}")

    try:
        while True:
            raw = await websocket.receive_text()
            await dispatch(websocket, user, raw)
    except WebSocketDisconnect:
        logger.info(f"ws_disconnected user={user['id']}")
    finally:
        manager.disconnect(websocket)
