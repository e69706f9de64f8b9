"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns raw bytes received on a connection into structured HTTPRequest
objects.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  REQUEST LINE     GET /echo/abc HTTP/1.1\r\n                         │
    │                   ─┬─ ────┬──── ────┬───                             │
    │                  Method  Target   Version                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │  HEADERS          Host: localhost:4221\r\n                           │
    │                   User-Agent: curl/8.4.0\r\n                         │
    │                   Accept-Encoding: gzip\r\n                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │  SEPARATOR        \r\n                                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │  BODY             raw bytes (may be empty)                           │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PARSING RULES
=============================================================================

1. The head ends at the first \r\n\r\n. Without one, the whole buffer is
   the head and the body is empty.
2. The request line splits on single spaces into exactly three tokens.
   Anything else is a 400.
3. Header lines split on the first ": ". Lines without a non-empty name
   AND a non-empty value are dropped. A repeated name overwrites the
   earlier value. Names keep the case they were sent with.
4. The body is taken verbatim. RequestParser never truncates it to
   Content-Length; IncrementalParser uses Content-Length only to decide
   when a request has fully arrived.

The target is not URL-decoded and no query string is split off.

=============================================================================
INCREMENTAL PARSING
=============================================================================

A TCP read returns whatever bytes happen to be available, which may be
half a request or one and a half. IncrementalParser buffers per
connection and walks a small state machine:

    AWAITING_HEAD_END ──\r\n\r\n seen──► AWAITING_BODY ──N bytes──► COMPLETE
            │                                                          ▲
            └────────────── no Content-Length ─────────────────────────┘

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


HEAD_TERMINATOR = b"\r\n\r\n"
LINE_SEPARATOR = "\r\n"
HEADER_SEPARATOR = ": "


class HTTPParseError(Exception):
    """
    Raised when a request cannot be parsed.

    Carries the HTTP status code to answer with. Every parse failure this
    server detects is a client error, so the default is 400.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def lookup_header(headers: Dict[str, str], name: str, default: Optional[str] = None) -> Optional[str]:
    """
    Find a header value by name.

    Headers are stored with the exact case the client sent. The exact
    name is tried first, then a case-insensitive scan, so "user-agent"
    from one client and "User-Agent" from another both resolve.
    """
    if name in headers:
        return headers[name]

    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return default


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Built fresh for each request cycle and discarded once the response
    has been written.

        Raw bytes                  HTTPRequest                 Handler
        from socket    ──parse──►   dataclass    ──route──►    function
    """

    method: str                          # GET, POST, ...
    target: str                          # Request target, verbatim
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    # Filled in by the router from a wildcard pattern ("/echo/*message")
    path_params: Dict[str, str] = field(default_factory=dict)

    # (ip, port) of the peer, for access logs
    client_address: tuple[str, int] = ("", 0)

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Header value by name (exact case first, then any case)."""
        return lookup_header(self.headers, name, default)

    @property
    def user_agent(self) -> Optional[str]:
        """User-Agent header, or None when the client sent none."""
        return self.get_header("User-Agent")

    @property
    def accept_encoding(self) -> str:
        return self.get_header("Accept-Encoding", "")

    @property
    def content_length(self) -> Optional[int]:
        """
        Declared Content-Length, or None if absent.

        Raises:
            HTTPParseError: If the header is present but not a
                            non-negative integer.
        """
        return _declared_length(self.headers)


class RequestParser:
    """
    Parses a complete request buffer into an HTTPRequest.

    The parser is stateless; one instance can be shared by every
    connection. Use IncrementalParser when bytes arrive in pieces.
    """

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Parse raw request bytes.

        Args:
            data: Everything received for this request.
            client_address: Peer (ip, port), copied onto the request.

        Returns:
            The parsed HTTPRequest.

        Raises:
            HTTPParseError: If the request line is malformed.
        """
        head, separator, body = data.partition(HEAD_TERMINATOR)
        if not separator:
            body = b""

        method, target, version, headers = self.parse_head(head)

        return HTTPRequest(
            method=method,
            target=target,
            version=version,
            headers=headers,
            body=body,
            client_address=client_address,
        )

    def parse_head(self, head: bytes) -> tuple[str, str, str, Dict[str, str]]:
        """
        Parse the head section (request line + header lines).

        Returns:
            Tuple of (method, target, version, headers).
        """
        lines = head.decode("utf-8", errors="replace").split(LINE_SEPARATOR)
        method, target, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])
        return method, target, version, headers

    def _parse_request_line(self, line: str) -> tuple[str, str, str]:
        """
        Split "METHOD SP TARGET SP VERSION" into its three tokens.

        Raises:
            HTTPParseError: Unless the line is exactly three non-empty
                            tokens separated by single spaces.
        """
        tokens = line.split(" ")
        if len(tokens) != 3 or not all(tokens):
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = tokens
        return method, target, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse "Name: Value" lines into a dict.

        Lenient: lines that do not split into a non-empty name and a
        non-empty value are skipped and parsing continues.
        """
        headers: Dict[str, str] = {}

        for line in lines:
            name, separator, value = line.partition(HEADER_SEPARATOR)
            if not separator or not name or not value:
                continue

            # Last occurrence wins
            headers[name] = value

        return headers


class ParserState(Enum):
    """Progress of an IncrementalParser through one request."""

    AWAITING_HEAD_END = "awaiting_head_end"  # No \r\n\r\n yet
    AWAITING_BODY = "awaiting_body"          # Head parsed, body short of Content-Length
    COMPLETE = "complete"                    # request() may be called


class IncrementalParser:
    """
    Buffers bytes for one connection until a full request has arrived.

    Usage:
        parser = IncrementalParser(client_address=addr)
        while parser.feed(sock.recv(4096)) is not ParserState.COMPLETE:
            ...
        request = parser.request()

    Bytes beyond the end of the current request stay buffered and count
    towards the next one.
    """

    def __init__(
        self,
        parser: Optional[RequestParser] = None,
        client_address: tuple[str, int] = ("", 0),
    ):
        self._parser = parser or RequestParser()
        self.client_address = client_address

        self._buffer = b""
        self._reset()

    def _reset(self) -> None:
        self.state = ParserState.AWAITING_HEAD_END
        self._head: Optional[tuple[str, str, str, Dict[str, str]]] = None
        self._body_start = 0
        self._expected_length: Optional[int] = None

    @property
    def has_pending_data(self) -> bool:
        """True if bytes of an unfinished request are buffered."""
        return bool(self._buffer)

    def feed(self, data: bytes) -> ParserState:
        """
        Add received bytes and advance the state machine.

        Raises:
            HTTPParseError: If the head is malformed or Content-Length is
                            not a non-negative integer.
        """
        self._buffer += data
        return self._advance()

    def _advance(self) -> ParserState:
        if self.state is ParserState.AWAITING_HEAD_END:
            head_end = self._buffer.find(HEAD_TERMINATOR)
            if head_end == -1:
                return self.state

            self._head = self._parser.parse_head(self._buffer[:head_end])
            self._body_start = head_end + len(HEAD_TERMINATOR)
            self._expected_length = _declared_length(self._head[3])

            if self._expected_length is None:
                self.state = ParserState.COMPLETE
            else:
                self.state = ParserState.AWAITING_BODY

        if self.state is ParserState.AWAITING_BODY:
            received = len(self._buffer) - self._body_start
            if received >= self._expected_length:
                self.state = ParserState.COMPLETE

        return self.state

    def request(self) -> HTTPRequest:
        """
        Take the completed request and reset for the next one.

        Raises:
            RuntimeError: If the parser is not in the COMPLETE state.
        """
        if self.state is not ParserState.COMPLETE:
            raise RuntimeError(f"Request not complete (state={self.state.value})")

        if self._expected_length is None:
            body_end = len(self._buffer)
        else:
            body_end = self._body_start + self._expected_length

        method, target, version, headers = self._head
        request = HTTPRequest(
            method=method,
            target=target,
            version=version,
            headers=headers,
            body=self._buffer[self._body_start:body_end],
            client_address=self.client_address,
        )

        # Surplus bytes are only examined on the next feed()
        self._buffer = self._buffer[body_end:]
        self._reset()

        return request


def _declared_length(headers: Dict[str, str]) -> Optional[int]:
    raw = lookup_header(headers, "Content-Length")
    if raw is None:
        return None

    try:
        length = int(raw.strip())
    except ValueError:
        raise HTTPParseError(f"Invalid Content-Length: {raw!r}")

    if length < 0:
        raise HTTPParseError(f"Invalid Content-Length: {raw!r}")
    return length


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
) -> HTTPRequest:
    """Parse a complete request buffer with a throwaway RequestParser."""
    return RequestParser().parse(data, client_address)
