"""
Shared fixtures: sample requests, a storage directory, and a live server
on a free port.
"""

import socket
import threading
import time
from pathlib import Path
from typing import Generator, Optional

import pytest

from rawhttp import HTTPServer, ServerConfig


@pytest.fixture
def sample_get_request() -> bytes:
    """GET with a handful of headers and no body."""
    return (
        b"GET /user-agent HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"User-Agent: foobar/1.2.3\r\n"
        b"Accept: */*\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """POST /files/ with a Content-Length body."""
    body = b"12345"
    return (
        b"POST /files/number HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"Content-Type: application/octet-stream\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
        + body
    )


@pytest.fixture
def storage_dir(tmp_path: Path) -> Path:
    """Empty storage directory for /files/."""
    directory = tmp_path / "files"
    directory.mkdir()
    return directory


class LiveServer:
    """An HTTPServer running its accept loop on a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self.host: Optional[str] = None
        self.port: Optional[int] = None
        self._thread: Optional[threading.Thread] = None

    def start(self):
        self.host, self.port = self.server.start()
        self._thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self._thread.start()

        deadline = time.time() + 5.0
        while not self.server.is_serving:
            if time.time() > deadline:
                raise RuntimeError("Accept loop did not start")
            time.sleep(0.01)

    def stop(self):
        self.server.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def connect(self, timeout: float = 5.0) -> socket.socket:
        """Open a client socket to the server."""
        sock = socket.create_connection(("127.0.0.1", self.port), timeout=timeout)
        return sock

    def request(self, raw: bytes, timeout: float = 5.0) -> bytes:
        """
        Send one raw request, half-close, and read until the server closes.
        """
        with self.connect(timeout) as sock:
            sock.sendall(raw)
            sock.shutdown(socket.SHUT_WR)
            return recv_all(sock)

    def read_response(self, sock: socket.socket) -> bytes:
        """Read one response from a connection that stays open."""
        return recv_response(sock)


def recv_all(sock: socket.socket) -> bytes:
    chunks = []
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


def recv_response(sock: socket.socket, timeout: float = 5.0) -> bytes:
    """
    Read exactly one response off a socket that stays open.

    Uses Content-Length when present; otherwise the head alone.
    """
    deadline = time.time() + timeout
    data = b""

    while b"\r\n\r\n" not in data:
        if time.time() > deadline:
            raise TimeoutError("No complete response head")
        chunk = sock.recv(4096)
        if not chunk:
            return data
        data += chunk

    head, _, body = data.partition(b"\r\n\r\n")
    length = 0
    for line in head.split(b"\r\n")[1:]:
        name, _, value = line.partition(b": ")
        if name.lower() == b"content-length":
            length = int(value)

    while len(body) < length:
        if time.time() > deadline:
            raise TimeoutError("Incomplete response body")
        chunk = sock.recv(4096)
        if not chunk:
            break
        body += chunk

    return head + b"\r\n\r\n" + body


@pytest.fixture
def server_config(storage_dir: Path) -> ServerConfig:
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        directory=str(storage_dir),
        min_workers=2,
        max_workers=8,
        log_level="WARNING",
    )


@pytest.fixture
def live_server(server_config: ServerConfig) -> Generator[LiveServer, None, None]:
    """A started server with the standard routes and a storage directory."""
    live = LiveServer(HTTPServer(server_config))
    live.start()

    yield live

    live.stop()
