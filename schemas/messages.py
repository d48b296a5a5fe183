from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional


class Frame(BaseModel):
    """One `{type, payload}` unit on the wire."""
    type: str
    payload: Optional[dict[str, Any]] = None


class JoinRoomPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room_id: str = Field(alias="roomId", min_length=1)
    username: Optional[str] = None


class RoomJoinedPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room_id: str = Field(alias="roomId")


class RoomFullPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room_id: str = Field(alias="roomId")
    max_size: int = Field(alias="maxSize")


class RoomReadyPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room_id: str = Field(alias="roomId")
    message: str


class UserPayload(BaseModel):
    username: Optional[str] = None


class RoomUserCountPayload(BaseModel):
    count: int


def encode_frame(frame_type: str, payload: BaseModel) -> str:
    return Frame(type=frame_type, payload=payload.model_dump(by_alias=True)).model_dump_json()
