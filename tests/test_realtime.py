import asyncio
from contextlib import ExitStack

import pytest
from fastapi import WebSocketDisconnect
from sqlalchemy.exc import SQLAlchemyError

from friendchat.chat import realtime
from friendchat.chat.models import Message
from friendchat.chat.realtime import ConnectionManager, manager
from friendchat.core.database import SessionLocal, engine


def connect(client, user):
    return client.websocket_connect(f"/ws?token={user['token']}")


def join(ws, chat_id):
    ws.send_json({"event": "joinRoom", "data": chat_id})
    return ws.receive_json()


def send(ws, chat_id, author_id, content):
    ws.send_json(
        {
            "event": "sendMessage",
            "data": {"chatId": chat_id, "authorId": author_id, "content": content},
        }
    )


def open_chat(client, user, other):
    response = client.get(f"/chats/find/{other['id']}", headers=user["headers"])
    assert response.status_code == 200
    return response.json()


def count_messages():
    with SessionLocal() as db:
        return db.query(Message).count()


def test_alice_says_hi_to_bob(client, alice, bob):
    friendship = client.post(
        "/friends/request", json={"receiverId": bob["id"]}, headers=alice["headers"]
    ).json()
    client.put(
        "/friends/respond",
        json={"friendshipId": friendship["id"], "status": "ACCEPTED"},
        headers=bob["headers"],
    )
    chat = open_chat(client, alice, bob)
    assert chat["messages"] == []

    with connect(client, alice) as alice_ws, connect(client, bob) as bob_ws:
        assert join(alice_ws, chat["id"]) == {"event": "joinedRoom", "data": chat["id"]}
        assert join(bob_ws, chat["id"]) == {"event": "joinedRoom", "data": chat["id"]}

        send(alice_ws, chat["id"], alice["id"], "hi")

        received = bob_ws.receive_json()
        echoed = alice_ws.receive_json()

    assert received["event"] == "receiveMessage"
    assert received["data"]["content"] == "hi"
    assert received["data"]["author"]["username"] == "alice"
    assert received["data"]["chatId"] == chat["id"]
    assert echoed == received

    history = open_chat(client, bob, alice)["messages"]
    assert [(m["id"], m["content"]) for m in history] == [(received["data"]["id"], "hi")]


def test_only_joined_connections_receive(client, friends):
    alice, bob = friends
    chat = open_chat(client, alice, bob)

    with connect(client, alice) as alice_ws, connect(client, bob) as bob_ws, connect(
        client, bob
    ) as idle_ws:
        join(alice_ws, chat["id"])
        join(bob_ws, chat["id"])

        send(alice_ws, chat["id"], alice["id"], "hello")
        assert alice_ws.receive_json()["event"] == "receiveMessage"
        assert bob_ws.receive_json()["event"] == "receiveMessage"

        # Anything broadcast to the idle socket would be queued ahead of this ack
        assert join(idle_ws, chat["id"])["event"] == "joinedRoom"


def test_non_participant_cannot_join(client, friends, carol):
    alice, bob = friends
    chat = open_chat(client, alice, bob)

    with connect(client, carol) as carol_ws:
        reply = join(carol_ws, chat["id"])

    assert reply["event"] == "error"
    assert manager.members(chat["id"]) == set()


def test_join_unknown_chat_is_refused(client, alice):
    with connect(client, alice) as ws:
        assert join(ws, "no-such-chat")["event"] == "error"


def test_non_participant_cannot_send(client, friends, carol):
    alice, bob = friends
    chat = open_chat(client, alice, bob)

    with connect(client, carol) as carol_ws:
        send(carol_ws, chat["id"], carol["id"], "let me in")
        assert carol_ws.receive_json()["event"] == "error"

    assert count_messages() == 0


def test_cannot_send_as_someone_else(client, friends):
    alice, bob = friends
    chat = open_chat(client, alice, bob)

    with connect(client, alice) as alice_ws:
        join(alice_ws, chat["id"])
        send(alice_ws, chat["id"], bob["id"], "it's me, bob")
        reply = alice_ws.receive_json()

    assert reply["event"] == "error"
    assert count_messages() == 0


def test_persistence_failure_is_not_broadcast(client, friends, monkeypatch):
    alice, bob = friends
    chat = open_chat(client, alice, bob)

    def broken_create_message(db, chat_id, author_id, content):
        raise SQLAlchemyError("database is gone")

    monkeypatch.setattr(realtime, "create_message", broken_create_message)

    with connect(client, alice) as alice_ws, connect(client, bob) as bob_ws:
        join(alice_ws, chat["id"])
        join(bob_ws, chat["id"])

        send(alice_ws, chat["id"], alice["id"], "lost")

        # The next frame each side sees is the ack, not the lost message
        assert join(alice_ws, chat["id"])["event"] == "joinedRoom"
        assert join(bob_ws, chat["id"])["event"] == "joinedRoom"

    assert count_messages() == 0


def test_joined_sockets_do_not_hold_database_connections(client, friends):
    alice, bob = friends
    chat = open_chat(client, alice, bob)

    # More sockets than the pool has connections (5 + 10 overflow)
    with ExitStack() as stack:
        sockets = [stack.enter_context(connect(client, alice)) for _ in range(20)]
        for ws in sockets:
            assert join(ws, chat["id"])["event"] == "joinedRoom"

        assert engine.pool.checkedout() == 0

        response = client.get("/friends/pending", headers=bob["headers"])
        assert response.status_code == 200

        send(sockets[0], chat["id"], alice["id"], "still here")
        for ws in sockets:
            assert ws.receive_json()["data"]["content"] == "still here"

        assert engine.pool.checkedout() == 0


def test_http_is_served_between_frames(client, friends):
    alice, bob = friends
    chat = open_chat(client, alice, bob)

    with connect(client, alice) as alice_ws:
        join(alice_ws, chat["id"])
        send(alice_ws, chat["id"], alice["id"], "first")

        history = client.get(f"/chats/find/{alice['id']}", headers=bob["headers"])

        assert alice_ws.receive_json()["data"]["content"] == "first"

    assert history.status_code == 200


def test_malformed_frames_get_errors(client, alice):
    with connect(client, alice) as ws:
        ws.send_text("not json")
        assert ws.receive_json()["event"] == "error"

        ws.send_json({"event": "dance"})
        assert ws.receive_json()["event"] == "error"

        ws.send_json({"event": "sendMessage", "data": {"chatId": "x"}})
        assert ws.receive_json()["event"] == "error"


def test_invalid_token_is_refused(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws?token=garbage"):
            pass


def test_missing_token_is_refused(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws"):
            pass


def test_disconnect_leaves_rooms(client, friends):
    alice, bob = friends
    chat = open_chat(client, alice, bob)

    with connect(client, alice) as ws:
        join(ws, chat["id"])
        assert len(manager.members(chat["id"])) == 1

    assert manager.members(chat["id"]) == set()


class FakeSocket:
    def __init__(self):
        self.sent = []

    async def send_json(self, data):
        self.sent.append(data)


class ClosedSocket:
    async def send_json(self, data):
        raise RuntimeError("Cannot call send once a close message has been sent.")


def test_connection_manager_fans_out_to_room_members_only():
    rooms = ConnectionManager()
    first, second, outsider = FakeSocket(), FakeSocket(), FakeSocket()
    rooms.join(first, "chat-1")
    rooms.join(second, "chat-1")
    rooms.join(outsider, "chat-2")

    delivered = asyncio.run(rooms.broadcast("chat-1", "receiveMessage", {"content": "hi"}))

    assert delivered == 2
    expected = [{"event": "receiveMessage", "data": {"content": "hi"}}]
    assert first.sent == expected
    assert second.sent == expected
    assert outsider.sent == []


def test_connection_manager_drops_dead_connections():
    rooms = ConnectionManager()
    alive, dead = FakeSocket(), ClosedSocket()
    rooms.join(alive, "chat-1")
    rooms.join(dead, "chat-1")

    delivered = asyncio.run(rooms.broadcast("chat-1", "receiveMessage", {}))

    assert delivered == 1
    assert rooms.members("chat-1") == {alive}


def test_connection_manager_disconnect_clears_every_room():
    rooms = ConnectionManager()
    socket = FakeSocket()
    rooms.join(socket, "chat-1")
    rooms.join(socket, "chat-2")

    rooms.disconnect(socket)

    assert rooms.rooms == {}
