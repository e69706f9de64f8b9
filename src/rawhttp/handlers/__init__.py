"""
=============================================================================
HANDLERS
=============================================================================

Route handlers and the route table that wires them together.

A handler is a plain function (or bound method) that takes an HTTPRequest
and returns an HTTPResponse:

    def handler(request: HTTPRequest) -> HTTPResponse:
        return ok("Hello")

=============================================================================
ROUTE TABLE
=============================================================================

    ┌────────┬───────────────────┬──────────────────────────────────────────┐
    │ Method │ Pattern           │ Behavior                                 │
    ├────────┼───────────────────┼──────────────────────────────────────────┤
    │ any    │ /                 │ 200, no headers, empty body              │
    │ any    │ /echo/*message    │ 200 text/plain, gzip if accepted         │
    │ any    │ /user-agent       │ 200 text/plain User-Agent, else 400      │
    │ POST   │ /files/*filename  │ 201 after writing body, 500 on failure   │
    │ GET    │ /files/*filename  │ 200 octet-stream, 404 if absent          │
    │ *      │ anything else     │ 404, empty body                          │
    └────────┴───────────────────┴──────────────────────────────────────────┘

=============================================================================
"""

from pathlib import Path
from typing import Optional, Union

from ..http.router import Router
from ..middleware.compression import CompressionMiddleware
from .basic import root, echo, user_agent
from .files import FileHandler, FileStore


def create_router(directory: Optional[Union[str, Path]] = None) -> Router:
    """
    Build the router with every route installed, in match order.

    Args:
        directory: Storage directory for /files/. None disables storage.
    """
    router = Router()
    files = FileHandler(directory)

    router.add_route("/", root)
    router.add_route("/echo/*message", CompressionMiddleware().bind(echo))
    router.add_route("/user-agent", user_agent)
    router.add_route("/files/*filename", files.write, method="POST", name="files.write")
    router.add_route("/files/*filename", files.read, method="GET", name="files.read")

    return router


__all__ = [
    "create_router",
    "root",
    "echo",
    "user_agent",
    "FileHandler",
    "FileStore",
]
