import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8080))

PUBLIC_DIR = os.getenv("PUBLIC_DIR", os.path.join(os.path.dirname(os.path.abspath(__file__)), "public"))

DEFAULT_ROOM_ID = os.getenv("DEFAULT_ROOM_ID", "room1")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

# Frames queued per connection before further frames to that peer are dropped.
OUTBOX_MAX_FRAMES = int(os.getenv("OUTBOX_MAX_FRAMES", 1024))
