"""
=============================================================================
COMPRESSION MIDDLEWARE
=============================================================================

gzip-encodes response bodies for clients that ask for it.

=============================================================================
CONTENT NEGOTIATION
=============================================================================

    Request:
    ┌───────────────────────────────────────────────────────────────┐
    │ GET /echo/hello HTTP/1.1                                      │
    │ Accept-Encoding: deflate, gzip                                │
    │                           └── "gzip" appears anywhere → accept│
    └───────────────────────────────────────────────────────────────┘

    Response:
    ┌───────────────────────────────────────────────────────────────┐
    │ HTTP/1.1 200 OK                                               │
    │ Content-Type: text/plain                                      │
    │ Content-Length: 25      (compressed size)                     │
    │ Content-Encoding: gzip                                        │
    │                                                               │
    │ [gzip compressed body]                                        │
    └───────────────────────────────────────────────────────────────┘

The check is a case-insensitive substring match on the Accept-Encoding
value. q-values are not parsed, so "gzip;q=0" still counts as accepting
gzip.

Unlike a general-purpose compressor this one has no size threshold and
no content-type filter: a client that accepts gzip always gets gzip,
even when the compressed body is larger than the original. It is bound
to the echo route only.

=============================================================================
"""

import gzip
import logging

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


def accepts_gzip(request: HTTPRequest) -> bool:
    """True if the request's Accept-Encoding mentions gzip."""
    return "gzip" in request.accept_encoding.lower()


class CompressionMiddleware(Middleware):
    """
    Response compression middleware.

    1. Call the next handler to get the response
    2. Leave it alone unless the client accepts gzip and the response
       has no Content-Encoding yet
    3. Compress the body
    4. Set Content-Encoding: gzip and Content-Length to the compressed size

    Usage:
        router.add_route("/echo/*message", CompressionMiddleware().bind(echo))
    """

    def __init__(self, level: int = 6):
        """
        Args:
            level: gzip compression level, 1 (fastest) to 9 (smallest).
        """
        self.level = level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        response = next(request)

        if not accepts_gzip(request):
            return response

        # Don't double-compress
        if "Content-Encoding" in response.headers:
            return response

        original_size = len(response.body)
        response.body = gzip.compress(response.body, compresslevel=self.level)

        response.headers["Content-Encoding"] = "gzip"
        response.headers["Content-Length"] = str(len(response.body))

        logger.debug(f"gzip {request.target}: {original_size} -> {len(response.body)} bytes")
        return response
