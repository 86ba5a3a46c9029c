import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="friendchat-tests-")

# Configuration is read at import time
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["PUBLIC_BASE_URL"] = "http://testserver"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from fastapi.testclient import TestClient

from friendchat.main import app
from friendchat.chat.realtime import manager
from friendchat.core.database import drop_db, init_db


@pytest.fixture(autouse=True)
def fresh_database():
    drop_db()
    init_db()
    yield
    manager.rooms.clear()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def signup(client, username, email, password, files=None):
    response = client.post(
        "/signup",
        data={"username": username, "email": email, "password": password},
        files=files,
    )
    assert response.status_code == 201, response.text
    body = response.json()
    return body["user"], body["token"]


@pytest.fixture
def alice(client):
    user, token = signup(client, "alice", "a@x.com", "pw1")
    return {**user, "token": token, "headers": bearer(token)}


@pytest.fixture
def bob(client):
    user, token = signup(client, "bob", "b@x.com", "pw2")
    return {**user, "token": token, "headers": bearer(token)}


@pytest.fixture
def carol(client):
    user, token = signup(client, "carol", "c@x.com", "pw3")
    return {**user, "token": token, "headers": bearer(token)}


@pytest.fixture
def friends(client, alice, bob):
    """alice and bob with an accepted friendship."""
    request = client.post(
        "/friends/request", json={"receiverId": bob["id"]}, headers=alice["headers"]
    )
    assert request.status_code == 201
    response = client.put(
        "/friends/respond",
        json={"friendshipId": request.json()["id"], "status": "ACCEPTED"},
        headers=bob["headers"],
    )
    assert response.status_code == 200
    return alice, bob
