"""
pytest configuration and fixtures.
"""

import dataclasses
import os
import socket
import threading
import time
from pathlib import Path
from typing import Generator

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fileserver import FileServer, ServerConfig


@pytest.fixture
def doc_root(tmp_path: Path) -> Path:
    """
    Document root with a small tree:

        www/
        ├── a.txt          "hello" (5 bytes)
        ├── blob.bin       non-UTF-8 bytes
        └── sub/
            └── nested.txt
    """
    root = Path(os.path.realpath(tmp_path)) / "www"
    root.mkdir()
    (root / "a.txt").write_text("hello")
    (root / "blob.bin").write_bytes(b"\x89PNG\r\n\x1a\n\xff\xfe\x00\x01")
    (root / "sub").mkdir()
    (root / "sub" / "nested.txt").write_text("nested file\n")
    return root


@pytest.fixture
def outside_file(tmp_path: Path) -> Path:
    """A file next to (not inside) the document root."""
    path = Path(os.path.realpath(tmp_path)) / "secret.txt"
    path.write_text("top secret")
    return path


@pytest.fixture
def config(doc_root: Path) -> ServerConfig:
    """Test server configuration on an ephemeral port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        root=str(doc_root),
        timeout=5.0,
        log_level="WARNING",
    )


def send_raw(address, data: bytes, timeout: float = 5.0) -> bytes:
    """Send raw bytes, half-close, and read the full response."""
    with socket.create_connection(address, timeout=timeout) as sock:
        if data:
            sock.sendall(data)
        sock.shutdown(socket.SHUT_WR)

        chunks = []
        while True:
            chunk = sock.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def split_response(raw: bytes):
    """Split a raw response into (status_line, headers dict, payload bytes)."""
    head, _, payload = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(": ")
        headers[name] = value
    return lines[0], headers, payload


class RunningServer:
    """Runs a FileServer in a background thread."""

    def __init__(self, server: FileServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def address(self):
        return self.server.address

    def start(self):
        self.server.bind()
        self._thread = threading.Thread(target=self.server.listen, daemon=True)
        self._thread.start()

        for _ in range(50):  # 5 seconds max
            if self.server.is_running:
                return
            time.sleep(0.1)

        raise RuntimeError("Server failed to start")

    def get(self, target: str, extra: bytes = b"") -> bytes:
        request = f"GET {target} HTTP/1.1\r\nUser-Agent: pytest\r\n".encode() + extra + b"\r\n"
        return self.send(request)

    def send(self, data: bytes) -> bytes:
        return send_raw(self.address, data)

    split = staticmethod(split_response)

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def running_server(config: ServerConfig) -> Generator[RunningServer, None, None]:
    """A sequential server on an ephemeral port."""
    srv = RunningServer(FileServer(config, poll_interval=0.1))
    srv.start()

    yield srv

    srv.stop()


@pytest.fixture
def server_factory(config: ServerConfig):
    """Start servers with config overrides; all are stopped at teardown."""
    started = []

    def factory(**overrides) -> RunningServer:
        srv = RunningServer(FileServer(dataclasses.replace(config, **overrides), poll_interval=0.1))
        srv.start()
        started.append(srv)
        return srv

    yield factory

    for srv in started:
        srv.stop()
