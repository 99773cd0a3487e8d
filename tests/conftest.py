"""Shared fixtures: app settings, an in-process TestClient and a live uvicorn server."""

import socket
import threading
import time

import pytest
import uvicorn
from fastapi.testclient import TestClient

from streamprobe.app import create_app
from streamprobe.config import Settings

CHUNK_COUNT = 5
CHUNK_SIZE = 2048
LIVE_DELAY_MS = 40
IMAGE_SIZE = 5000


class _ThreadedServer(uvicorn.Server):
    # signals belong to the main thread
    def install_signal_handlers(self):
        pass


@pytest.fixture(scope="session")
def image_file(tmp_path_factory):
    path = tmp_path_factory.mktemp("resources") / "sample.png"
    payload = b"\x89PNG\r\n\x1a\n" + bytes(range(256)) * 20
    path.write_bytes(payload[:IMAGE_SIZE])
    return path


@pytest.fixture(scope="session")
def app_settings(image_file):
    return Settings(
        CHUNK_DELAY_MS=5,
        CHUNK_SIZE=CHUNK_SIZE,
        CHUNK_COUNT=CHUNK_COUNT,
        IMAGE_PATH=str(image_file),
    )


@pytest.fixture(scope="session")
def live_settings(image_file):
    return Settings(
        CHUNK_DELAY_MS=LIVE_DELAY_MS,
        CHUNK_SIZE=CHUNK_SIZE,
        CHUNK_COUNT=CHUNK_COUNT,
        IMAGE_PATH=str(image_file),
    )


@pytest.fixture
def client(app_settings):
    with TestClient(create_app(app_settings)) as c:
        yield c


@pytest.fixture(scope="session")
def live_server(live_settings):
    """Base URL of a real uvicorn server on an ephemeral port."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]

    config = uvicorn.Config(create_app(live_settings), log_config=None, lifespan="on")
    server = _ThreadedServer(config)
    thread = threading.Thread(target=server.run, kwargs={"sockets": [sock]}, daemon=True)
    thread.start()

    deadline = time.monotonic() + 10
    while not server.started:
        if time.monotonic() > deadline or not thread.is_alive():
            raise RuntimeError("uvicorn test server did not start")
        time.sleep(0.02)

    yield f"http://127.0.0.1:{port}"

    server.should_exit = True
    thread.join(timeout=5)
    sock.close()
