import random
import threading
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from logging_config import get_logger

logger = get_logger(__name__)


def generate_client_id() -> str:
    """Two independent 52-bit random values as 13 hex chars each.

    Collisions are possible; this is a label, not a credential.
    """
    return f"{random.getrandbits(52):013x}{random.getrandbits(52):013x}"


class JoinResult(NamedTuple):
    room_id: str
    client_id: str
    is_host: bool
    peer_count: int
    host_id: Optional[str]
    members: Tuple[Any, ...]


class LeaveResult(NamedTuple):
    room_id: str
    client_id: str
    removed: bool
    peer_count: int
    host_id: Optional[str]
    room_deleted: bool
    members: Tuple[Any, ...]


class Room:
    """Members of one room keyed by client id, plus the current host."""

    def __init__(self, room_id: str):
        self.room_id = room_id
        self.members: Dict[str, Any] = {}
        self.host_id: Optional[str] = None

    def __len__(self):
        return len(self.members)

    @property
    def peer_count(self) -> int:
        return len(self.members)

    def join(self, client_id: str, handle) -> Tuple[bool, int]:
        if client_id in self.members and self.members[client_id] is not handle:
            logger.info(f"Client {client_id} rejoined room {self.room_id} on a new connection, replacing the old entry")
        self.members[client_id] = handle
        if self.host_id is None:
            self.host_id = client_id
            logger.info(f"Client {client_id} is now host of room {self.room_id}")
        return self.host_id == client_id, len(self.members)

    def leave(self, client_id: str, handle=None) -> Tuple[bool, int, Optional[str]]:
        """Remove ``client_id``; returns (removed, peer_count, host_id).

        When ``handle`` is given the entry is only removed if it still points
        at that handle, so an overwritten connection cannot evict its
        replacement.
        """
        current = self.members.get(client_id)
        if current is None or (handle is not None and current is not handle):
            return False, len(self.members), self.host_id

        del self.members[client_id]
        if self.host_id == client_id:
            self.host_id = self.next_host()
            if self.host_id is not None:
                logger.info(f"Host {client_id} left room {self.room_id}, {self.host_id} is the new host")
        return True, len(self.members), self.host_id

    def next_host(self) -> Optional[str]:
        # Longest-standing identity: dicts iterate in first-insertion order.
        return next(iter(self.members), None)

    def handles(self) -> Tuple[Any, ...]:
        return tuple(self.members.values())


class RoomRegistry:
    """Process-wide mapping of room id to Room.

    All mutations and member snapshots happen under a single lock. A room is
    present exactly while it has at least one member.
    """

    def __init__(self):
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.RLock()

    def __len__(self):
        with self._lock:
            return len(self._rooms)

    def __contains__(self, room_id: str):
        with self._lock:
            return room_id in self._rooms

    def get(self, room_id: str) -> Optional[Room]:
        with self._lock:
            return self._rooms.get(room_id)

    def get_or_create(self, room_id: str) -> Room:
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                room = Room(room_id)
                self._rooms[room_id] = room
                logger.info(f"Created room {room_id}")
            return room

    def remove(self, room_id: str):
        with self._lock:
            if self._rooms.pop(room_id, None) is not None:
                logger.info(f"Deleted room {room_id}")

    def join(self, room_id: str, client_id: str, handle) -> JoinResult:
        with self._lock:
            room = self.get_or_create(room_id)
            is_host, peer_count = room.join(client_id, handle)
            logger.info(f"Client {client_id} joined room {room_id} ({peer_count} peers, host={room.host_id})")
            return JoinResult(
                room_id=room_id,
                client_id=client_id,
                is_host=is_host,
                peer_count=peer_count,
                host_id=room.host_id,
                members=room.handles(),
            )

    def leave(self, room_id: str, client_id: str, handle=None) -> Optional[LeaveResult]:
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                logger.debug(f"Leave for {client_id} ignored, room {room_id} no longer exists")
                return None

            removed, peer_count, host_id = room.leave(client_id, handle)
            if removed:
                logger.info(f"Client {client_id} left room {room_id} ({peer_count} peers left)")
            else:
                logger.debug(f"Client {client_id} was already replaced in room {room_id}")

            room_deleted = peer_count == 0
            if room_deleted:
                self.remove(room_id)

            return LeaveResult(
                room_id=room_id,
                client_id=client_id,
                removed=removed,
                peer_count=peer_count,
                host_id=host_id,
                room_deleted=room_deleted,
                members=room.handles(),
            )

    def members(self, room_id: str) -> Tuple[Any, ...]:
        with self._lock:
            room = self._rooms.get(room_id)
            return room.handles() if room else ()

    def describe(self, room_id: str) -> Optional[dict]:
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                return None
            return {
                "room_id": room.room_id,
                "peer_count": room.peer_count,
                "host_id": room.host_id,
                "client_ids": list(room.members),
            }

    def snapshot(self) -> List[dict]:
        with self._lock:
            return [
                {"room_id": room.room_id, "peer_count": room.peer_count, "host_id": room.host_id}
                for room in self._rooms.values()
            ]
