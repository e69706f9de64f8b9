"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything that knows the shape of HTTP/1.1 messages, and nothing that
knows about sockets.

    request.py       bytes → HTTPRequest (RequestParser, IncrementalParser)
    response.py      HTTPResponse → bytes (format_response, ResponseBuilder)
    router.py        HTTPRequest → handler → HTTPResponse
    status_codes.py  status codes and reason phrases

=============================================================================
"""

from .request import (
    HTTPRequest,
    HTTPParseError,
    RequestParser,
    IncrementalParser,
    ParserState,
    parse_request,
)
from .response import (
    HTTPResponse,
    ResponseBuilder,
    format_response,
    ok,                   # 200 OK
    created,              # 201 Created
    bad_request,          # 400 Bad Request
    not_found,            # 404 Not Found
    internal_error,       # 500 Internal Server Error
    service_unavailable,  # 503 Service Unavailable
)
from .router import Router, Route, RouteMatch
from .status_codes import HTTPStatus, reason_phrase

__all__ = [
    # Request parsing
    "HTTPRequest",
    "HTTPParseError",
    "RequestParser",
    "IncrementalParser",
    "ParserState",
    "parse_request",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "format_response",
    "ok",
    "created",
    "bad_request",
    "not_found",
    "internal_error",
    "service_unavailable",

    # Routing
    "Router",
    "Route",
    "RouteMatch",

    # Status codes
    "HTTPStatus",
    "reason_phrase",
]
