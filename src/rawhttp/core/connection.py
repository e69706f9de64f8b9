"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted client socket: reads complete requests off it and
writes response bytes back.

=============================================================================
READING REQUESTS FROM A STREAM
=============================================================================

TCP has no message boundaries. One recv() may return part of a request,
exactly one, or one and a half:

    recv #1:  b"POST /files/a HTTP/1.1\\r\\nContent-Le"
    recv #2:  b"ngth: 5\\r\\n\\r\\nhel"
    recv #3:  b"lo"

Each Connection owns an IncrementalParser that buffers these chunks and
says when a full request has arrived. Surplus bytes stay in the parser
for the next request on the same connection.

=============================================================================
LIFECYCLE
=============================================================================

    NEW ──► READING ──► PROCESSING ──► WRITING ──┐
              ▲                                  │
              └──────────────────────────────────┘
                        (next request)

    any state ──► CLOSING ──► CLOSED

The connection stays open until the client closes its side, a request
fails to parse, a write fails, the server stops, or the client sends
nothing for keep_alive_timeout seconds after a response.

=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional

from ..http.request import HTTPRequest, IncrementalParser, ParserState


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Where a connection is in its request/response cycle."""

    NEW = "new"                # Accepted, nothing read yet
    READING = "reading"        # Waiting for request bytes
    PROCESSING = "processing"  # Request parsed, handler running
    WRITING = "writing"        # Sending response bytes
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass(eq=False)
class Connection:
    """
    A client connection.

        with Connection(socket=client_socket, address=addr) as conn:
            while (request := conn.read_request()) is not None:
                conn.send_response(handle(request))

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier for log lines.
        state: Current ConnectionState.
        requests_handled: Requests read so far.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 4096            # Bytes per recv()
    timeout: Optional[float] = None    # First request; None = block until the client sends
    keep_alive_timeout: float = 5.0    # Idle time allowed between later requests

    _parser: IncrementalParser = field(init=False, repr=False)

    def __post_init__(self):
        # Accepted sockets inherit the listening socket's accept timeout
        self.socket.settimeout(self.timeout)
        self._parser = IncrementalParser(client_address=self.address)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    def read_request(self) -> Optional[HTTPRequest]:
        """
        Read the next complete request.

            while parser not COMPLETE:
                chunk = recv()
                empty chunk → peer closed → return None
                feed chunk

        Returns:
            The parsed HTTPRequest, or None if the client closed the
            connection (including mid-request).

        Raises:
            HTTPParseError: If the request line or Content-Length is
                            malformed.
            TimeoutError: If the read timeout expires. After the first
                          request this is keep_alive_timeout.
        """
        self.state = ConnectionState.READING

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        # A previous read may already have buffered a whole request
        state = self._parser.feed(b"")

        while state is not ParserState.COMPLETE:
            chunk = self._recv()
            if not chunk:
                if self._parser.has_pending_data:
                    logger.debug(f"[{self.id}] Client closed mid-request")
                return None
            state = self._parser.feed(chunk)

        request = self._parser.request()
        self.requests_handled += 1
        self.state = ConnectionState.PROCESSING
        return request

    def _recv(self) -> bytes:
        """
        recv() that reports a reset or locally shut-down socket as EOF.

        Raises:
            TimeoutError: If the socket timeout expires.
        """
        try:
            data = self.socket.recv(self.buffer_size)
        except socket.timeout:
            raise TimeoutError(f"[{self.id}] Read timed out after {self.socket.gettimeout()}s")
        except OSError as e:
            logger.debug(f"[{self.id}] recv failed: {e}")
            return b""

        self.last_activity = time.time()
        return data

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes with sendall().

        Returns:
            True if everything was sent, False if the connection is gone.
        """
        self.state = ConnectionState.WRITING

        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

        self.last_activity = time.time()
        return True

    def abort(self) -> None:
        """
        Shut the socket down in both directions without closing it.

        Called from another thread while a worker may be blocked in
        recv(); that recv() then returns EOF and the worker closes the
        connection normally.
        """
        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # Already disconnected

    def close(self) -> None:
        """
        Close the connection.

        1. shutdown(SHUT_WR) sends FIN so the client sees end of response
        2. drain whatever the client still sends, briefly
        3. close() releases the file descriptor
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
