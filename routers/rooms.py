from fastapi import APIRouter, HTTPException, Request
from schemas.rooms import RoomDetailsResponse, RoomMember
from signaling import MessageRouter
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str, request: Request):
    """
    Read-only view of a live room.

    Returns:
    - room_id: Room identifier as supplied by the clients
    - created_at: When the first member joined
    - member_count: Current number of members
    - max_size: Room capacity
    - is_full: Whether the room has reached capacity
    - members: Client ids and display names of the members
    """
    message_router: MessageRouter = request.app.state.message_router
    directory = message_router.directory

    async with directory.lock:
        room = directory.get_room(room_id)
        if not room:
            logger.info(f"Room details failed: Room {room_id} not found")
            raise HTTPException(status_code=404, detail="Room not found")
        members = [
            RoomMember(client_id=client.id, username=client.username, connected_at=client.connected_at)
            for client in room.members.values()
        ]
        created_at = room.created_at

    logger.debug(f"Room details retrieved for {room_id}: {len(members)}/{directory.max_room_size} members")

    return RoomDetailsResponse(
        room_id=room_id,
        created_at=created_at,
        member_count=len(members),
        max_size=directory.max_room_size,
        is_full=len(members) >= directory.max_room_size,
        members=members,
    )
