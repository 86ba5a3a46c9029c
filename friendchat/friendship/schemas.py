from typing import Optional
from datetime import datetime

from friendchat.core.schemas import CamelModel
from friendchat.users.schemas import UserSummary
from .models import FriendshipStatus


# friend request
class FriendRequestModel(CamelModel):
    receiver_id: str


class FriendshipModel(CamelModel):
    id: str
    requester_id: str
    receiver_id: str
    status: FriendshipStatus
    created_at: datetime


# respond to a friend request
class RespondFriendRequestModel(CamelModel):
    friendship_id: str
    status: Optional[str] = None


# pending requests
class PendingFriendRequestModel(FriendshipModel):
    requester: UserSummary
