import asyncio
import enum
import uuid
from typing import Optional

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from constants import OUTBOX_MAX_FRAMES
from logging_config import get_logger

logger = get_logger(__name__)


class ConnectionState(enum.Enum):
    UNJOINED = "unjoined"
    JOINED = "joined"
    CLOSED = "closed"


class ConnectionHandle:
    """One client's WebSocket plus its (room_id, client_id) association.

    Outgoing frames go through an outbox drained by a writer task, so
    ``send`` never blocks and each peer sees frames in the order they were
    queued for it.
    """

    def __init__(self, websocket: WebSocket, outbox_limit: int = OUTBOX_MAX_FRAMES):
        self.websocket = websocket
        self.outbox_limit = outbox_limit
        self.dropped = 0
        self.connection_id = uuid.uuid4().hex
        self.room_id: Optional[str] = None
        self.client_id: Optional[str] = None
        self.state = ConnectionState.UNJOINED
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._outbox: Optional[asyncio.Queue] = None
        self._writer: Optional[asyncio.Task] = None

    def __repr__(self):
        return f"<ConnectionHandle {self.connection_id} room={self.room_id} client={self.client_id} {self.state.value}>"

    @property
    def joined(self) -> bool:
        return self.state is ConnectionState.JOINED

    @property
    def is_open(self) -> bool:
        if self.state is ConnectionState.CLOSED or self._outbox is None:
            return False
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def associate(self, room_id: str, client_id: str) -> bool:
        """Bind this connection to a room; only the first call wins."""
        if self.state is not ConnectionState.UNJOINED:
            return False
        self.room_id = room_id
        self.client_id = client_id
        self.state = ConnectionState.JOINED
        return True

    def start(self):
        self._loop = asyncio.get_running_loop()
        self._outbox = asyncio.Queue(maxsize=self.outbox_limit)
        self._writer = asyncio.create_task(self._drain())

    def send(self, text: str) -> bool:
        """Queue ``text`` for delivery. Returns False if the peer is not open."""
        if not self.is_open:
            return False
        try:
            self._loop.call_soon_threadsafe(self._enqueue, text)
        except RuntimeError as e:
            # Loop already shut down.
            logger.debug(f"Dropping frame for connection {self.connection_id}: {e}")
            return False
        return True

    def _enqueue(self, text: str):
        try:
            self._outbox.put_nowait(text)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.debug(f"Outbox full for connection {self.connection_id}, dropped {self.dropped} frames so far")

    async def _drain(self):
        while True:
            text = await self._outbox.get()
            if not self.is_open:
                continue
            try:
                await self.websocket.send_text(text)
            except Exception as e:
                logger.debug(f"Send to connection {self.connection_id} failed: {e}")

    async def close(self):
        self.state = ConnectionState.CLOSED
        if self._writer is not None:
            self._writer.cancel()
            try:
                await self._writer
            except asyncio.CancelledError:
                pass
            self._writer = None
