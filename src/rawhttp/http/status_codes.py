"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server actually emits, with their reason phrases.

=============================================================================
STATUS LINE
=============================================================================

    HTTP/1.1 404 Not Found\r\n
    ──┬───── ─┬─ ────┬────
      │       │      │
    Version  Code  Reason phrase (from _STATUS_PHRASES)

Only the minimal set is defined. A response may still carry any integer
status code with a caller-supplied message; this enum only supplies the
defaults used by ResponseBuilder.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    # 2xx SUCCESS
    OK = 200
    CREATED = 201

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    NOT_FOUND = 404

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_client_error(self) -> bool:
        return 400 <= self < 500

    @property
    def is_server_error(self) -> bool:
        return 500 <= self < 600

    @property
    def is_error(self) -> bool:
        """4xx or 5xx."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
}


def reason_phrase(status_code: int) -> str:
    """
    Look up the reason phrase for an arbitrary integer status code.

    Unknown codes get an empty phrase; the status line is still
    well-formed ("HTTP/1.1 299 ").
    """
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return ""
