import asyncio
import json

from starlette.websockets import WebSocketState


class FakeConnection:
    """In-memory stand-in for a WebSocket: records every frame sent to it."""

    def __init__(self, is_open: bool = True):
        self.is_open = is_open
        self.sent: list[str] = []

    def send_nowait(self, message: str) -> bool:
        self.sent.append(message)
        return True

    @property
    def frames(self) -> list[dict]:
        return [json.loads(m) for m in self.sent]

    def of_type(self, frame_type: str) -> list[dict]:
        return [f for f in self.frames if f["type"] == frame_type]

    def clear(self) -> None:
        self.sent.clear()


class BrokenConnection(FakeConnection):
    def send_nowait(self, message: str) -> bool:
        raise RuntimeError("socket exploded")


def join_frame(room_id, username=None) -> str:
    payload = {"roomId": room_id}
    if username is not None:
        payload["username"] = username
    return json.dumps({"type": "join-room", "payload": payload})




class FakeWebSocket:
    """Minimal stand-in for a Starlette WebSocket as seen by WebSocketConnection."""

    def __init__(self):
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.sent: list[str] = []

    async def send_text(self, data: str) -> None:
        self.sent.append(data)


class StuckWebSocket(FakeWebSocket):
    """A peer that accepts the first write and then never finishes it."""

    def __init__(self):
        super().__init__()
        self.writing = asyncio.Event()
        self._never = asyncio.Event()

    async def send_text(self, data: str) -> None:
        self.writing.set()
        await self._never.wait()


class FailingWebSocket(FakeWebSocket):
    async def send_text(self, data: str) -> None:
        raise RuntimeError("connection reset by peer")
