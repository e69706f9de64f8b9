"""
=============================================================================
HTTP RESPONSE MODEL AND FORMATTER
=============================================================================

Builds HTTP/1.1 responses and serializes them to wire bytes.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  STATUS LINE      HTTP/1.1 200 OK\r\n                               │
    │                   ───┬──── ─┬─ ─┬─                                  │
    │                   Version Code Message                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │  HEADERS          Content-Type: text/plain\r\n                      │
    │                   Content-Length: 3\r\n                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │  SEPARATOR        \r\n                                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │  BODY             abc                                               │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHAT THE FORMATTER DOES NOT DO
=============================================================================

format_response() writes exactly the headers on the response, in the
order they were set. It never adds Content-Length, Date or Server on its
own, so the bare response

    ResponseBuilder().build()

serializes to exactly b"HTTP/1.1 200 OK\\r\\n\\r\\n". Handlers that send a
body set Content-Length themselves (ResponseBuilder.text() and
ResponseBuilder.content_length() do it for them).

=============================================================================
BUILDER PATTERN
=============================================================================

    response = (ResponseBuilder()
        .status(HTTPStatus.OK)
        .text("hello")
        .header("X-Trace", "1")
        .build())

Every setter returns the builder; build() returns the HTTPResponse.
Anything not set keeps its default:

    version         "HTTP/1.1"
    status_code     200
    status_message  "OK"  (reason phrase of status_code)
    headers         {}
    body            b""

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from .status_codes import HTTPStatus, reason_phrase


CRLF = "\r\n"


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be written to a socket.

    No validation happens here; any status code, message or header set
    is written as given.

        Handler returns          to_bytes()              Socket sends
        HTTPResponse    ─────►   serializes    ─────►    raw bytes
    """

    version: str = "HTTP/1.1"
    status_code: int = 200
    status_message: str = "OK"
    headers: Dict[str, str] = field(default_factory=dict)  # Insertion-ordered
    body: bytes = b""

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 404 Not Found"."""
        return f"{self.version} {self.status_code} {self.status_message}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a header in place. Returns self for chaining."""
        self.headers[name] = value
        return self

    def to_bytes(self) -> bytes:
        """
        Serialize to wire format.

            HTTP/1.1 200 OK\\r\\n          ← Status line
            Content-Type: text/plain\\r\\n ← One line per header, in order
            Content-Length: 3\\r\\n
            \\r\\n                         ← Always present, even with no headers
            abc                          ← Body bytes, verbatim
        """
        lines = [self.status_line]
        for name, value in self.headers.items():
            lines.append(f"{name}: {value}")

        head = CRLF.join(lines) + CRLF + CRLF
        return head.encode("utf-8") + self.body


def format_response(response: HTTPResponse) -> bytes:
    """Serialize a response to bytes (same as response.to_bytes())."""
    return response.to_bytes()


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

    Each method returns `self`, enabling chaining:

        builder.status(201).header("Location", "/files/a").build()
        ───────┬────────────┬─────────────────────────────┬──────
               └────────────┴─────────────────────────────┘
                       All return 'self' except build()
    """

    def __init__(self):
        self._version = "HTTP/1.1"
        self._status_code: int = HTTPStatus.OK
        self._status_message: Optional[str] = None  # None = reason phrase
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    # =========================================================================
    # STATUS LINE
    # =========================================================================

    def version(self, version: str) -> "ResponseBuilder":
        self._version = version
        return self

    def status(self, status_code: int, message: Optional[str] = None) -> "ResponseBuilder":
        """
        Set the status code and, optionally, the status message.

        Without a message, build() uses the standard reason phrase for the
        code ("" if the code is not one this server knows).
        """
        self._status_code = status_code
        self._status_message = message
        return self

    # =========================================================================
    # HEADERS
    # =========================================================================

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        """Add several headers at once, keeping their order."""
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def content_length(self) -> "ResponseBuilder":
        """Set Content-Length to the byte length of the current body."""
        return self.header("Content-Length", str(len(self._body)))

    # =========================================================================
    # BODY
    # =========================================================================

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """
        Set the raw body. Strings are encoded as UTF-8.

        Headers are left alone; call content_length() after this if the
        response should carry one.
        """
        if isinstance(body, str):
            self._body = body.encode("utf-8")
        else:
            self._body = body
        return self

    def text(self, text: Union[str, bytes], content_type: str = "text/plain") -> "ResponseBuilder":
        """Set a body along with its Content-Type and exact Content-Length."""
        return self.body(text).content_type(content_type).content_length()

    # =========================================================================
    # BUILD
    # =========================================================================

    def build(self) -> HTTPResponse:
        message = self._status_message
        if message is None:
            message = reason_phrase(self._status_code)

        return HTTPResponse(
            version=self._version,
            status_code=int(self._status_code),
            status_message=message,
            headers=dict(self._headers),
            body=self._body,
        )

    def to_bytes(self) -> bytes:
        """Build and serialize in one step."""
        return self.build().to_bytes()


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# One-liners for the responses the route handlers produce.
#
#     return ok(b"...", "application/octet-stream")
#     return not_found()
#
# =============================================================================

def ok(body: Union[str, bytes] = b"", content_type: str = "text/plain") -> HTTPResponse:
    """200 OK with Content-Type and exact Content-Length."""
    return ResponseBuilder().status(HTTPStatus.OK).text(body, content_type).build()


def created() -> HTTPResponse:
    """201 Created with no headers and no body."""
    return ResponseBuilder().status(HTTPStatus.CREATED).build()


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    """400 Bad Request with a short plain-text explanation."""
    return ResponseBuilder().status(HTTPStatus.BAD_REQUEST).text(message).build()


def not_found() -> HTTPResponse:
    """
    404 Not Found with an empty body.

    Used both for unknown routes and for missing files.
    """
    return ResponseBuilder().status(HTTPStatus.NOT_FOUND).build()


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """
    500 Internal Server Error.

    Keep the message generic; details belong in the server log.
    """
    return ResponseBuilder().status(HTTPStatus.INTERNAL_SERVER_ERROR).text(message).build()


def service_unavailable(message: str = "Service Unavailable") -> HTTPResponse:
    """503, sent when the worker pool cannot accept another connection."""
    return ResponseBuilder().status(HTTPStatus.SERVICE_UNAVAILABLE).text(message).build()
