import json
from typing import Any, Iterable, Optional, Union

from logging_config import get_logger
from schemas.messages import RoomStateMessage

logger = get_logger(__name__)


def serialize(message: Union[dict, Any]) -> str:
    if isinstance(message, str):
        return message
    return json.dumps(message, separators=(",", ":"), ensure_ascii=False)


def broadcast(members: Iterable, message, exclude=None) -> int:
    """Send one serialized frame to every open member except ``exclude``.

    Best effort: closed peers and failed sends are skipped, never retried and
    never raised. Returns how many members the frame was queued for.
    """
    payload = serialize(message)
    delivered = 0
    for handle in members:
        if handle is exclude or not handle.is_open:
            continue
        try:
            if handle.send(payload):
                delivered += 1
        except Exception as e:
            logger.debug(f"Skipping member {handle!r} during broadcast: {e}")
    return delivered


def broadcast_room_state(members: Iterable, peer_count: int, host_id: Optional[str]) -> int:
    state = RoomStateMessage(peerCount=peer_count, hostId=host_id)
    return broadcast(members, state.model_dump())
