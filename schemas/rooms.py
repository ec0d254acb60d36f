from pydantic import BaseModel
from typing import Optional


class RoomSummary(BaseModel):
    room_id: str
    peer_count: int
    host_id: Optional[str]

class RoomDetailsResponse(BaseModel):
    room_id: str
    peer_count: int
    host_id: Optional[str]
    client_ids: list[str]

class RoomListResponse(BaseModel):
    rooms: list[RoomSummary]
    room_count: int
