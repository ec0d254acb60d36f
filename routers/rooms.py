from fastapi import APIRouter, HTTPException, Request
from schemas.rooms import RoomDetailsResponse, RoomListResponse, RoomSummary
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


@rooms_router.get("", response_model=RoomListResponse)
async def list_rooms(request: Request):
    registry = request.app.state.signaling.registry
    rooms = [RoomSummary(**room) for room in registry.snapshot()]
    logger.debug(f"Listing {len(rooms)} rooms for {request.client.host if request.client else 'unknown'}")
    return RoomListResponse(rooms=rooms, room_count=len(rooms))


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str, request: Request):
    """
    Current membership of a room.

    Returns:
    - room_id: Room identifier
    - peer_count: Number of connected members
    - host_id: Client id of the current host
    - client_ids: Member client ids, longest-standing first
    """
    registry = request.app.state.signaling.registry
    room = registry.describe(room_id)
    if room is None:
        logger.info(f"Room details failed: Room {room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")

    return RoomDetailsResponse(**room)
