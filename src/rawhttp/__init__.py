"""
=============================================================================
RAWHTTP
=============================================================================

A minimal HTTP/1.1 server written directly on top of TCP sockets, with no
HTTP library underneath.

=============================================================================
PROJECT STRUCTURE
=============================================================================

    rawhttp/
    ├── __init__.py          ← You are here
    ├── __main__.py          ← CLI: python -m rawhttp
    ├── config.py            ← ServerConfig
    ├── server.py            ← HTTPServer: lifecycle and per-connection loop
    │
    ├── core/                ← Sockets and threads
    │   ├── socket_server.py ← Listening socket, accept loop
    │   ├── connection.py    ← One client: read requests, write responses
    │   └── thread_pool.py   ← Worker threads
    │
    ├── http/                ← Protocol
    │   ├── request.py       ← HTTPRequest, RequestParser, IncrementalParser
    │   ├── response.py      ← HTTPResponse, ResponseBuilder, format_response
    │   ├── router.py        ← Router
    │   └── status_codes.py  ← HTTPStatus
    │
    ├── handlers/            ← Route behaviors
    │   ├── __init__.py      ← create_router(): the route table
    │   ├── basic.py         ← /, /echo/*, /user-agent
    │   └── files.py         ← /files/* backed by a directory
    │
    └── middleware/
        ├── base.py          ← Middleware, MiddlewarePipeline
        ├── logging.py       ← Access log
        └── compression.py   ← gzip

=============================================================================
ROUTES
=============================================================================

    GET  /                  → 200, empty
    GET  /echo/<text>       → 200 text/plain <text>   (gzip if accepted)
    GET  /user-agent        → 200 text/plain <User-Agent>
    POST /files/<name>      → 201, body stored as <directory>/<name>
    GET  /files/<name>      → 200 application/octet-stream, or 404
    anything else           → 404

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer, create_app
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "create_app", "__version__"]
