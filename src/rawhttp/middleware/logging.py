"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

Writes one log line per handled request on the "rawhttp.access" logger.

=============================================================================
LOG FORMATS
=============================================================================

    TEXT (default, Apache-like):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 127.0.0.1 - - [18/Oct/2026:10:55:36 +0000] "GET /echo/abc" 200 3 ...│
    │ ─────────────────────────────────────────────────────────────────── │
    │ IP          Timestamp                Method/Target Status Size Time │
    └─────────────────────────────────────────────────────────────────────┘

    JSON (one object per line, for log shippers):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"request_id": "a1b2c3d4", "method": "GET", "target": "/echo/abc",  │
    │  "client_ip": "127.0.0.1", "status_code": 200, ...}                 │
    └─────────────────────────────────────────────────────────────────────┘

The request id exists only in the log line. Nothing is added to the
response: the bytes a client receives are exactly what the handler built.

Route the access log separately if needed:

    logging.getLogger("rawhttp.access").addHandler(file_handler)

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import dataclass, asdict

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("rawhttp.access")


@dataclass
class RequestLog:
    """One access-log entry."""

    request_id: str
    method: str
    target: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int     # Bytes of body actually sent
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware.

    Add it first so the timing covers the whole handling of a request:

        pipeline.add(LoggingMiddleware(log_format="json"))

    Requests whose handler raises are logged at ERROR and the exception is
    re-raised unchanged.
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        """
        Args:
            log_format: "text" or "json".
            log_level: Level the access lines are emitted at.
        """
        self.log_format = log_format
        self.log_level = log_level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = uuid.uuid4().hex[:8]
        start_time = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"[{request_id}] Request failed: {request.method} {request.target} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        log_entry = RequestLog(
            request_id=request_id,
            method=request.method,
            target=request.target,
            client_ip=request.client_address[0],
            user_agent=request.user_agent or "-",
            status_code=response.status_code,
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(log_entry.to_dict()))
        else:
            logger.log(self.log_level, log_entry.to_text())

        return response
