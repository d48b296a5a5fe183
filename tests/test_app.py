import pytest
from fastapi.testclient import TestClient

from app import app, release_connection
from tests.helpers import FakeWebSocket
from transport import WebSocketConnection


@pytest.fixture
def client():
    with TestClient(app) as client:
        yield client


def join(ws, room_id, username):
    ws.send_json({"type": "join-room", "payload": {"roomId": room_id, "username": username}})


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["rooms"] == 0
    assert body["clients"] == 0


def test_unknown_room_is_404(client):
    response = client.get("/rooms/does-not-exist")
    assert response.status_code == 404


def test_two_party_session(client):
    with client.websocket_connect("/ws") as a:
        join(a, "r1", "A")
        assert a.receive_json() == {"type": "room-joined", "payload": {"roomId": "r1"}}
        assert a.receive_json() == {"type": "room-user-count", "payload": {"count": 1}}

        with client.websocket_connect("/") as b:
            join(b, "r1", "B")
            assert b.receive_json() == {"type": "room-joined", "payload": {"roomId": "r1"}}
            assert b.receive_json() == {"type": "room-user-count", "payload": {"count": 2}}
            assert b.receive_json()["type"] == "room-ready"

            assert a.receive_json() == {"type": "user-joined", "payload": {"username": "B"}}
            assert a.receive_json() == {"type": "room-user-count", "payload": {"count": 2}}
            assert a.receive_json()["type"] == "room-ready"

            details = client.get("/rooms/r1").json()
            assert details["member_count"] == 2
            assert details["is_full"] is True
            assert sorted(m["username"] for m in details["members"]) == ["A", "B"]

            raw = '{"type":"chat","payload":{"username":"A","text":"hi","roomId":"r1"}}'
            a.send_text(raw)
            assert b.receive_text() == raw

            offer = '{"type":"offer","payload":{"offer":{"type":"offer","sdp":"v=0"}}}'
            b.send_text(offer)
            assert a.receive_text() == offer

        # B went away without leave-room
        assert a.receive_json() == {"type": "user-left", "payload": {"username": "B"}}
        assert a.receive_json() == {"type": "room-user-count", "payload": {"count": 1}}
        assert client.get("/rooms/r1").json()["member_count"] == 1

    assert client.get("/rooms/r1").status_code == 404
    assert client.get("/health").json()["clients"] == 0


def test_third_client_is_turned_away(client):
    with client.websocket_connect("/ws") as a, client.websocket_connect("/ws") as b:
        join(a, "r1", "A")
        a.receive_json()
        a.receive_json()
        join(b, "r1", "B")
        for _ in range(3):
            b.receive_json()

        with client.websocket_connect("/ws") as c:
            join(c, "r1", "C")
            assert c.receive_json() == {"type": "room-full", "payload": {"roomId": "r1", "maxSize": 2}}

            # C can still use its connection for another room
            join(c, "r2", "C")
            assert c.receive_json() == {"type": "room-joined", "payload": {"roomId": "r2"}}

        assert client.get("/rooms/r1").json()["member_count"] == 2


def test_malformed_frame_keeps_connection_open(client):
    with client.websocket_connect("/ws") as a:
        a.send_text("this is not json")
        a.send_text('{"type": "chat", "payload": {"text": "nobody home"}}')
        join(a, "r1", "A")
        assert a.receive_json() == {"type": "room-joined", "payload": {"roomId": "r1"}}


class ExplodingRouter:
    async def disconnect(self, client_id):
        raise RuntimeError("leave failed")


async def test_release_connection_stops_writer_when_leave_fails():
    connection = WebSocketConnection(FakeWebSocket())
    connection.start()

    with pytest.raises(RuntimeError):
        await release_connection(ExplodingRouter(), "client-1", connection)

    assert connection._writer_task.done()
    assert not connection.is_open
