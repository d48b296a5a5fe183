import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional, Protocol

import message_types
from constants import MAX_ROOM_SIZE
from logging_config import get_logger
from schemas.messages import (
    RoomJoinedPayload,
    RoomReadyPayload,
    RoomUserCountPayload,
    UserPayload,
    encode_frame,
)

logger = get_logger(__name__)


class Connection(Protocol):
    """Transport-facing side of a client: the only primitive the relay needs is "send a frame"."""

    @property
    def is_open(self) -> bool: ...

    def send_nowait(self, message: str) -> bool: ...


@dataclass(eq=False)
class Client:
    id: str
    connection: Connection
    username: Optional[str] = None
    room_id: Optional[str] = None  # back-reference only, Room.members is authoritative
    connected_at: str = field(default_factory=lambda: datetime.now().isoformat())
    terminated: bool = False

    @property
    def is_idle(self) -> bool:
        return self.room_id is None

    def send(self, message: str) -> bool:
        """Best-effort delivery, never raises."""
        if self.terminated or not self.connection.is_open:
            logger.debug(f"Skipping send to client {self.id}: connection not writable")
            return False
        try:
            return self.connection.send_nowait(message)
        except Exception as e:
            logger.warning(f"Error sending to client {self.id}: {e}")
            return False


@dataclass(eq=False)
class Room:
    id: str
    members: Dict[str, Client] = field(default_factory=dict)
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def size(self) -> int:
        return len(self.members)


class JoinStatus(str, Enum):
    JOINED = "joined"
    ROOM_FULL = "room_full"


@dataclass(frozen=True)
class JoinResult:
    status: JoinStatus
    room_id: str
    max_size: int = MAX_ROOM_SIZE

    @property
    def joined(self) -> bool:
        return self.status is JoinStatus.JOINED


class ConnectionRegistry:
    """Tracks every live connection and its session state."""

    def __init__(self, on_unregister: Optional[Callable[[str], Awaitable[None]]] = None):
        self._clients: Dict[str, Client] = {}
        self.on_unregister = on_unregister

    def register(self, connection: Connection) -> str:
        client_id = uuid.uuid4().hex
        self._clients[client_id] = Client(id=client_id, connection=connection)
        logger.info(f"Registered client {client_id} (live clients: {len(self._clients)})")
        return client_id

    async def unregister(self, client_id: str) -> None:
        client = self._clients.get(client_id)
        if client is None or client.terminated:
            logger.debug(f"Unregister for unknown or terminated client {client_id}, ignoring")
            return
        client.terminated = True
        try:
            if self.on_unregister is not None:
                await self.on_unregister(client_id)
        finally:
            self._clients.pop(client_id, None)
            logger.info(f"Unregistered client {client_id} (live clients: {len(self._clients)})")

    def get(self, client_id: str) -> Optional[Client]:
        return self._clients.get(client_id)

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, client_id: str) -> bool:
        return client_id in self._clients


class RoomDirectory:
    """Owns the mapping room id -> Room, capacity enforcement and membership transitions.

    Every mutation runs under ``self.lock`` so the capacity check and the member
    insert are observed atomically by concurrent joiners. Sends never await, they
    only enqueue onto each member's connection.
    """

    def __init__(self, registry: ConnectionRegistry, max_room_size: int = MAX_ROOM_SIZE):
        self.registry = registry
        self.max_room_size = max_room_size
        self.lock = asyncio.Lock()
        self._rooms: Dict[str, Room] = {}

    # ---- queries ----

    def get_room(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def rooms(self) -> Dict[str, Room]:
        return dict(self._rooms)

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    # ---- mutations ----

    async def join(self, client_id: str, room_id: str, username: Optional[str] = None) -> JoinResult:
        async with self.lock:
            return self._join(client_id, room_id, username)

    async def leave(self, client_id: str) -> None:
        async with self.lock:
            self._leave(client_id)

    async def broadcast(self, room_id: str, message: str, exclude: Optional[str] = None) -> int:
        async with self.lock:
            return self._broadcast(room_id, message, exclude)

    async def broadcast_from(self, client_id: str, message: str) -> Optional[str]:
        """Send ``message`` to everyone sharing a room with ``client_id`` except the sender.

        Returns the room id, or None when the client is idle and nothing was sent.
        """
        async with self.lock:
            client = self.registry.get(client_id)
            if client is None or client.room_id is None:
                return None
            self._broadcast(client.room_id, message, exclude=client_id)
            return client.room_id

    def _join(self, client_id: str, room_id: str, username: Optional[str]) -> JoinResult:
        client = self.registry.get(client_id)
        if client is None or client.terminated:
            raise KeyError(f"client {client_id} is not registered")

        if client.room_id == room_id:
            # Already a member: keep the name the peers know, acknowledge again
            logger.info(f"Client {client_id} re-joined room {room_id} it is already in")
            client.send(encode_frame(message_types.ROOM_JOINED, RoomJoinedPayload(room_id=room_id)))
            self._broadcast_count(room_id)
            return JoinResult(JoinStatus.JOINED, room_id, self.max_room_size)

        if client.room_id is not None:
            self._leave(client_id)

        room = self._rooms.get(room_id)
        if room is not None and room.size >= self.max_room_size:
            logger.info(f"{username} rejected from room {room_id} - room full ({room.size}/{self.max_room_size})")
            return JoinResult(JoinStatus.ROOM_FULL, room_id, self.max_room_size)

        if room is None:
            room = Room(id=room_id)
            self._rooms[room_id] = room
            logger.debug(f"Created room {room_id}")

        room.members[client_id] = client
        client.room_id = room_id
        client.username = username

        client.send(encode_frame(message_types.ROOM_JOINED, RoomJoinedPayload(room_id=room_id)))
        self._broadcast(
            room_id,
            encode_frame(message_types.USER_JOINED, UserPayload(username=username)),
            exclude=client_id,
        )
        self._broadcast_count(room_id)
        if room.size >= self.max_room_size:
            self._broadcast(
                room_id,
                encode_frame(
                    message_types.ROOM_READY,
                    RoomReadyPayload(room_id=room_id, message="Both participants are here, you can start the call"),
                ),
            )
        logger.info(f"{username} joined room {room_id}. Room size: {room.size}")
        return JoinResult(JoinStatus.JOINED, room_id, self.max_room_size)

    def _leave(self, client_id: str) -> None:
        client = self.registry.get(client_id)
        if client is None or client.room_id is None:
            return

        room_id = client.room_id
        username = client.username
        client.room_id = None

        room = self._rooms.get(room_id)
        if room is None:
            logger.warning(f"Client {client_id} referenced missing room {room_id}")
            return
        room.members.pop(client_id, None)

        self._broadcast(room_id, encode_frame(message_types.USER_LEFT, UserPayload(username=username)))
        self._broadcast_count(room_id)
        logger.info(f"{username} left room {room_id}. Room size: {room.size}")

        if room.size == 0:
            del self._rooms[room_id]
            logger.info(f"Room {room_id} deleted (empty)")

    def _broadcast_count(self, room_id: str) -> None:
        room = self._rooms.get(room_id)
        if room is None:
            return
        self._broadcast(room_id, encode_frame(message_types.ROOM_USER_COUNT, RoomUserCountPayload(count=room.size)))

    def _broadcast(self, room_id: str, message: str, exclude: Optional[str] = None) -> int:
        room = self._rooms.get(room_id)
        if room is None:
            return 0
        delivered = 0
        for member_id, member in list(room.members.items()):
            if member_id == exclude:
                continue
            if member.send(message):
                delivered += 1
        logger.debug(f"Broadcast to room {room_id}: delivered to {delivered} of {room.size} members")
        return delivered
