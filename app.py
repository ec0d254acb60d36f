from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from routers.rooms import rooms_router
from routers.static import static_router
from backend import RoomRegistry
from signaling import SignalingService
from constants import DEFAULT_ROOM_ID, LOG_FILE, LOG_LEVEL, PUBLIC_DIR
from typing import Optional
from logging_config import get_logger, setup_logging
import os

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


async def websocket_endpoint(websocket: WebSocket, path: str):
    """Signaling socket. Any path upgrades, matching a WebSocket server that
    shares the HTTP server rather than owning a route.

    Protocol:
    - {"type": "join", "roomId"?, "clientId"?} joins a room
    - any other JSON object is relayed to the rest of the room
    """
    await websocket.app.state.signaling.serve(websocket)


def create_app(registry: Optional[RoomRegistry] = None, public_dir: Optional[os.PathLike] = None) -> FastAPI:
    app = FastAPI(title="Room Relay")

    # Configure CORS to allow all origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Allow all origins
        allow_credentials=True,
        allow_methods=["*"],  # Allow all HTTP methods
        allow_headers=["*"],  # Allow all headers
    )

    app.state.signaling = SignalingService(registry=registry, default_room_id=DEFAULT_ROOM_ID)
    app.state.public_dir = public_dir if public_dir is not None else PUBLIC_DIR

    app.include_router(rooms_router)
    app.add_api_websocket_route("/{path:path}", websocket_endpoint)
    # Catch-all file route goes last so API routes win.
    app.include_router(static_router)

    logger.info(f"FastAPI application initialized, serving files from {app.state.public_dir}")
    return app


app = create_app()
