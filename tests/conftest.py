import json

import pytest
from fastapi.testclient import TestClient

from app import create_app
from backend import RoomRegistry
from connection import ConnectionHandle, ConnectionState
from signaling import SignalingService


class RecordingHandle(ConnectionHandle):
    """ConnectionHandle that records frames instead of writing to a socket."""

    def __init__(self, name="peer"):
        super().__init__(websocket=None)
        self.name = name
        self.open = True
        self.sent = []

    @property
    def is_open(self):
        return self.open and self.state is not ConnectionState.CLOSED

    def send(self, text):
        if not self.is_open:
            return False
        self.sent.append(json.loads(text))
        return True

    def pop(self):
        frames, self.sent = self.sent, []
        return frames


@pytest.fixture
def registry():
    return RoomRegistry()


@pytest.fixture
def service(registry):
    return SignalingService(registry=registry)


@pytest.fixture
def make_handle():
    return RecordingHandle


@pytest.fixture
def public_dir(tmp_path):
    public = tmp_path / "public"
    public.mkdir()
    (public / "index.html").write_text("<h1>relay</h1>")
    (public / "app.js").write_text("console.log('relay');")
    (public / "style.css").write_text("body {}")
    (public / "data.bin").write_bytes(b"\x00\x01\x02")
    (public / "photo.jpg").write_bytes(b"\xff\xd8\xff")
    (public / "large.bin").write_bytes(b"r" * (1024 * 1024))
    (public / "nested").mkdir()
    (tmp_path / "secret.txt").write_text("do not serve")
    return public


@pytest.fixture
def app(registry, public_dir):
    return create_app(registry=registry, public_dir=public_dir)


@pytest.fixture
def client(app):
    # One shared event loop for every socket opened in a test.
    with TestClient(app) as test_client:
        yield test_client
