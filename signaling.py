from typing import Optional, Union

from fastapi import WebSocket

from backend import RoomRegistry, generate_client_id
from connection import ConnectionHandle, ConnectionState
from constants import DEFAULT_ROOM_ID
from logging_config import get_logger
from relay import broadcast, broadcast_room_state
from schemas.messages import JoinedMessage, JoinMessage, RelayMessage, parse_client_message

logger = get_logger(__name__)


class SignalingService:
    """Drives each connection through join, relay and close.

    One instance owns one RoomRegistry; the app keeps it on ``app.state`` so
    every app (and every test) gets its own rooms.
    """

    def __init__(self, registry: Optional[RoomRegistry] = None, default_room_id: str = DEFAULT_ROOM_ID):
        self.registry = registry if registry is not None else RoomRegistry()
        self.default_room_id = default_room_id

    async def serve(self, websocket: WebSocket):
        await websocket.accept()
        handle = ConnectionHandle(websocket)
        handle.start()
        logger.info(f"Connection {handle.connection_id} opened from {websocket.client}")

        message_count = 0
        try:
            while True:
                event = await websocket.receive()
                if event["type"] == "websocket.disconnect":
                    logger.debug(f"Connection {handle.connection_id} disconnected with code {event.get('code')}")
                    break
                raw = event.get("text")
                if raw is None:
                    raw = event.get("bytes") or b""
                message_count += 1
                self.on_message(handle, raw)
        finally:
            self.on_close(handle)
            await handle.close()
            logger.info(f"Connection {handle.connection_id} closed after {message_count} messages")

    def on_message(self, handle: ConnectionHandle, raw: Union[str, bytes]):
        message = parse_client_message(raw)
        if message is None:
            logger.debug(f"Dropping malformed frame from connection {handle.connection_id}")
            return

        if isinstance(message, JoinMessage):
            self.handle_join(handle, message)
        else:
            self.handle_relay(handle, message)

    def handle_join(self, handle: ConnectionHandle, message: JoinMessage):
        if handle.state is not ConnectionState.UNJOINED:
            logger.warning(
                f"Ignoring repeated join from {handle.client_id} in room {handle.room_id} "
                f"(requested room {message.roomId})"
            )
            return

        room_id = message.roomId or self.default_room_id
        client_id = message.clientId or generate_client_id()
        handle.associate(room_id, client_id)

        result = self.registry.join(room_id, client_id, handle)

        joined = JoinedMessage(
            roomId=room_id,
            clientId=client_id,
            isHost=result.is_host,
            peerCount=result.peer_count,
        )
        handle.send(joined.model_dump_json())
        broadcast_room_state(result.members, result.peer_count, result.host_id)

    def handle_relay(self, handle: ConnectionHandle, message: RelayMessage):
        if not handle.joined:
            logger.debug(f"Dropping {message.type!r} from connection {handle.connection_id}, not in a room")
            return

        members = self.registry.members(handle.room_id)
        delivered = broadcast(members, message.payload, exclude=handle)
        logger.debug(f"Relayed {message.type!r} from {handle.client_id} to {delivered} peers in room {handle.room_id}")

    def on_close(self, handle: ConnectionHandle):
        was_joined = handle.joined
        handle.state = ConnectionState.CLOSED
        if not was_joined:
            return

        result = self.registry.leave(handle.room_id, handle.client_id, handle)
        if result is None or result.room_deleted or not result.removed:
            return

        broadcast_room_state(result.members, result.peer_count, result.host_id)
