from typing import Optional
from datetime import datetime

from friendchat.core.schemas import CamelModel


class UserSummary(CamelModel):
    id: str
    username: str
    avatar_url: Optional[str] = None


class UserPublic(UserSummary):
    email: str
    created_at: datetime
