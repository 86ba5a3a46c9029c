from typing import List
from datetime import datetime

from friendchat.core.schemas import CamelModel
from friendchat.users.schemas import UserSummary


class MessageModel(CamelModel):
    id: str
    chat_id: str
    author_id: str
    content: str
    created_at: datetime
    author: UserSummary


class ChatModel(CamelModel):
    id: str
    created_at: datetime
    participants: List[UserSummary]
    messages: List[MessageModel]


# Realtime payloads
class SendMessagePayload(CamelModel):
    chat_id: str
    author_id: str
    content: str
