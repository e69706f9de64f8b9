"""
=============================================================================
MIDDLEWARE
=============================================================================

Code that runs around a handler: before the request reaches it and after
its response comes back.

    LoggingMiddleware:
        One access-log line per request, text or JSON. Installed globally
        by HTTPServer.

    CompressionMiddleware:
        gzip Content-Encoding for clients that accept it. Bound to the
        echo route only.

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog
from .compression import CompressionMiddleware, accepts_gzip

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "LoggingMiddleware",
    "RequestLog",
    "CompressionMiddleware",
    "accepts_gzip",
]
