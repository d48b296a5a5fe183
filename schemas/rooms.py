from pydantic import BaseModel
from typing import Optional


class RoomMember(BaseModel):
    client_id: str
    username: Optional[str] = None
    connected_at: str

class RoomDetailsResponse(BaseModel):
    room_id: str
    created_at: str
    member_count: int
    max_size: int
    is_full: bool
    members: list[RoomMember]

class HealthResponse(BaseModel):
    ok: bool
    now: str
    rooms: int
    clients: int
