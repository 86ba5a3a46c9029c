import os
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import ApiError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    token: str
    user: Dict[str, Any]

    @property
    def user_id(self) -> str:
        return self.user["id"]

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


class SessionManager:
    """
    Owns the token/user lifecycle of one client.

    Only the token is written to ``token_path``; the user record is fetched
    again from ``/me`` when a stored token is restored.
    """

    def __init__(self, api, token_path: Optional[str] = None):
        self.api = api
        self.token_path = token_path
        self._session: Optional[Session] = None

    @property
    def current(self) -> Optional[Session]:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def require(self) -> Session:
        if self._session is None:
            raise RuntimeError("Not logged in.")
        return self._session

    def signup(self, username: str, email: str, password: str, avatar=None) -> Session:
        return self._start(self.api.signup(username, email, password, avatar=avatar))

    def login(self, email: str, password: str) -> Session:
        return self._start(self.api.login(email, password))

    def logout(self):
        self._session = None
        if self.token_path and os.path.exists(self.token_path):
            os.remove(self.token_path)
        logger.info("session_ended")

    def restore(self) -> Optional[Session]:
        """Resume from a stored token; a rejected token is discarded."""
        if not self.token_path or not os.path.exists(self.token_path):
            return None

        with open(self.token_path) as f:
            token = json.load(f).get("token")
        if not token:
            return None

        try:
            user = self.api.me(Session(token=token, user={}))
        except ApiError as e:
            logger.info(f"session_restore_rejected status={e.status_code}")
            self.logout()
            return None

        self._session = Session(token=token, user=user)
        return self._session

    def _start(self, payload: Dict[str, Any]) -> Session:
        self._session = Session(token=payload["token"], user=payload["user"])
        if self.token_path:
            with open(self.token_path, "w") as f:
                json.dump({"token": self._session.token}, f)
        logger.info(f"session_started user={self._session.user_id}")
        return self._session
