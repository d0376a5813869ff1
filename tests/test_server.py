import json

import pytest
from fastapi.testclient import TestClient

from relay_chat.server.main import create_app

ALICE = {"userId": "u1", "username": "Alice"}
BOB = {"userId": "u2", "username": "Bob"}


def frame(event, data):
    return json.dumps({"event": event, "data": data})


def receive(ws):
    payload = json.loads(ws.receive_text())
    return payload["event"], payload["data"]


@pytest.fixture
def client():
    with TestClient(create_app()) as test_client:
        yield test_client


def test_status_endpoint(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "connections": 0}


def test_two_clients_share_messages_and_deletes(client):
    with client.websocket_connect("/ws") as a, client.websocket_connect("/ws") as b:
        a.send_text(frame("user_joined", ALICE))
        assert receive(a) == ("user_joined", ALICE)
        assert receive(b) == ("user_joined", ALICE)

        b.send_text(frame("user_joined", BOB))
        assert receive(a) == ("user_joined", BOB)
        assert receive(b) == ("user_joined", BOB)

        message = {"id": "m1", "userId": "u1", "username": "Alice", "text": "hi", "timestamp": "t"}
        a.send_text(frame("send_message", message))
        assert receive(a) == ("receive_message", message)
        assert receive(b) == ("receive_message", message)

        a.send_text(frame("delete_message", "m1"))
        assert receive(a) == ("delete_message", "m1")
        assert receive(b) == ("delete_message", "m1")


def test_typing_is_not_reflected_to_sender(client):
    with client.websocket_connect("/ws") as a, client.websocket_connect("/ws") as b:
        b.send_text(frame("typing", BOB))
        assert receive(a) == ("typing", BOB)
        b.send_text(frame("stop_typing", BOB))
        assert receive(a) == ("stop_typing", BOB)

        # The next frame B sees must be this broadcast, not its own typing echo.
        b.send_text(frame("delete_message", "x"))
        assert receive(b) == ("delete_message", "x")
        assert receive(a) == ("delete_message", "x")


def test_malformed_frames_are_skipped(client):
    with client.websocket_connect("/ws") as a:
        a.send_text("this is not json")
        a.send_text(frame("shout", {"text": "?"}))
        a.send_text(frame("send_message", "free-form payload"))
        assert receive(a) == ("receive_message", "free-form payload")


def test_abrupt_disconnect_announces_departure(client):
    with client.websocket_connect("/ws") as b:
        b.send_text(frame("user_joined", BOB))
        assert receive(b) == ("user_joined", BOB)
        with client.websocket_connect("/ws") as a:
            a.send_text(frame("user_joined", ALICE))
            assert receive(b) == ("user_joined", ALICE)
        assert receive(b) == ("user_left", ALICE)


def test_users_endpoint_lists_announced_identities(client):
    with client.websocket_connect("/ws") as a:
        a.send_text(frame("user_joined", dict(ALICE, dp="pic")))
        receive(a)
        a.send_text(frame("user_joined", dict(ALICE, avatar="new-pic")))
        receive(a)
        users = client.get("/users").json()
        assert users == [{"userId": "u1", "username": "Alice", "avatar": "new-pic"}]
        assert client.get("/").json()["connections"] == 1


def test_binary_frames_do_not_drop_the_connection(client):
    with client.websocket_connect("/ws") as a, client.websocket_connect("/ws") as b:
        a.send_text(frame("user_joined", ALICE))
        receive(a)
        receive(b)

        a.send_bytes(b"\x00\x01binary")
        a.send_bytes(frame("delete_message", "m7").encode("utf-8"))
        assert receive(b) == ("delete_message", "m7")

        message = {"id": "m1", "userId": "u1", "username": "Alice", "text": "still here", "timestamp": "t"}
        a.send_text(frame("send_message", message))
        assert receive(b) == ("receive_message", message)
