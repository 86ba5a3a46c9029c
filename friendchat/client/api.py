import logging
from typing import Any, BinaryIO, Dict, List, Optional, Tuple, Union

import httpx

from .errors import ApiError
from .session import Session

logger = logging.getLogger(__name__)

AvatarFile = Tuple[str, Union[bytes, BinaryIO], str]


class ApiClient:
    """
    Thin wrapper over the HTTP API.

    Every authenticated call takes the ``Session`` explicitly; the client
    itself holds no credentials.
    """

    def __init__(self, http: httpx.Client):
        self.http = http

    @classmethod
    def connect(cls, base_url: str, timeout: float = 10.0) -> "ApiClient":
        return cls(httpx.Client(base_url=base_url, timeout=timeout))

    def _request(self, method: str, url: str, session: Optional[Session] = None, **kwargs):
        if session is not None:
            kwargs["headers"] = {**kwargs.get("headers", {}), **session.headers}

        response = self.http.request(method, url, **kwargs)

        if response.is_error:
            try:
                detail = response.json().get("detail")
            except ValueError:
                detail = response.text
            logger.info(f"api_error method={method} url={url} status={response.status_code}")
            raise ApiError(response.status_code, detail)

        return response.json()

    # auth
    def signup(
        self,
        username: str,
        email: str,
        password: str,
        avatar: Optional[AvatarFile] = None,
    ) -> Dict[str, Any]:
        files = {"avatar": avatar} if avatar is not None else None
        data = {"username": username, "email": email, "password": password}
        return self._request("POST", "/signup", data=data, files=files)

    def login(self, email: str, password: str) -> Dict[str, Any]:
        return self._request("POST", "/login", json={"email": email, "password": password})

    def me(self, session: Session) -> Dict[str, Any]:
        return self._request("GET", "/me", session)

    # users
    def find_users(self, session: Session, username: str) -> List[Dict[str, Any]]:
        return self._request("GET", "/users/find", session, params={"username": username})

    # friends
    def request_friend(self, session: Session, receiver_id: str) -> Dict[str, Any]:
        return self._request("POST", "/friends/request", session, json={"receiverId": receiver_id})

    def respond_friend(self, session: Session, friendship_id: str, status: str) -> Dict[str, Any]:
        return self._request(
            "PUT",
            "/friends/respond",
            session,
            json={"friendshipId": friendship_id, "status": status},
        )

    def pending_requests(self, session: Session) -> List[Dict[str, Any]]:
        return self._request("GET", "/friends/pending", session)

    def friends(self, session: Session) -> List[Dict[str, Any]]:
        return self._request("GET", "/friends/all", session)

    # chats
    def find_chat(self, session: Session, friend_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/chats/find/{friend_id}", session)
