"""
=============================================================================
CORE NETWORKING
=============================================================================

The socket-level half of the server. Nothing here parses or builds HTTP
messages beyond handing bytes to the parser.

    SocketServer   listening socket + accept loop
    Connection     one client socket: read requests, write responses
    ThreadPool     workers that run one connection each

    ┌────────────────┐  accept()   ┌────────────┐  submit()  ┌──────────────┐
    │  SocketServer  │ ──────────► │ Connection │ ─────────► │  ThreadPool  │
    └────────────────┘             └────────────┘            └──────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "ThreadPool",
]
