from typing import Union

from pydantic import ValidationError

import message_types
from backend import Connection, ConnectionRegistry, RoomDirectory
from constants import MAX_ROOM_SIZE
from logging_config import get_logger
from schemas.messages import Frame, JoinRoomPayload, RoomFullPayload, encode_frame

logger = get_logger(__name__)


class MessageRouter:
    """Single entry point for transport events: connect, frame received, disconnect.

    Owns the registry and the room directory for one server instance. Each client
    moves Idle -> InRoom -> Idle ... until disconnect terminates it for good.
    """

    def __init__(self, max_room_size: int = MAX_ROOM_SIZE):
        self.registry = ConnectionRegistry()
        self.directory = RoomDirectory(self.registry, max_room_size=max_room_size)
        # implicit leave on disconnect
        self.registry.on_unregister = self.directory.leave

    def connect(self, connection: Connection) -> str:
        return self.registry.register(connection)

    async def disconnect(self, client_id: str) -> None:
        await self.registry.unregister(client_id)

    async def handle(self, client_id: str, raw: Union[str, bytes]) -> None:
        client = self.registry.get(client_id)
        if client is None or client.terminated:
            logger.debug(f"Dropping frame from unknown or terminated client {client_id}")
            return

        try:
            frame = Frame.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Invalid message received from client {client_id}, dropping: {e.error_count()} error(s)")
            return

        if frame.type == message_types.JOIN_ROOM:
            await self._handle_join(client_id, frame)
        elif frame.type == message_types.LEAVE_ROOM:
            await self.directory.leave(client_id)
        else:
            await self._relay(client_id, frame, raw)

    async def _handle_join(self, client_id: str, frame: Frame) -> None:
        try:
            payload = JoinRoomPayload.model_validate(frame.payload or {})
        except ValidationError as e:
            logger.warning(f"Invalid join-room payload from client {client_id}, dropping: {e.error_count()} error(s)")
            return

        result = await self.directory.join(client_id, payload.room_id, payload.username)
        if not result.joined:
            client = self.registry.get(client_id)
            if client is not None:
                client.send(encode_frame(
                    message_types.ROOM_FULL,
                    RoomFullPayload(room_id=result.room_id, max_size=result.max_size),
                ))

    async def _relay(self, client_id: str, frame: Frame, raw: Union[str, bytes]) -> None:
        # Forward the original text untouched, the payload is opaque to the relay
        message = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        room_id = await self.directory.broadcast_from(client_id, message)
        if room_id is None:
            logger.debug(f"Dropping {frame.type} from idle client {client_id}")
            return
        logger.debug(f"Relayed {frame.type} from client {client_id} in room {room_id}")
