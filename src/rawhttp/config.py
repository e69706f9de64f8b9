"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All server settings in one dataclass.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Priority (highest to lowest):                                     │
    │                                                                     │
    │   1. Command-line arguments                                         │
    │      └── python -m rawhttp --port 8080                              │
    │                                                                     │
    │   2. Environment variables                                          │
    │      └── RAWHTTP_PORT=8080 python -m rawhttp                        │
    │                                                                     │
    │   3. Default values (in this dataclass)                             │
    └─────────────────────────────────────────────────────────────────────┘

validate() runs at startup and fails fast with a ValueError, so a bad
port or a storage path that is not a directory is reported before the
socket is opened.

=============================================================================
"""

import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    NETWORK
        host, port, backlog, buffer_size, timeout, keep_alive_timeout
    STORAGE
        directory
    THREADING
        min_workers, max_workers, queue_size
    LOGGING
        log_level, log_format

    Tests bind to port 0 and read the real port back from the server:

        ServerConfig(port=0, directory=tmp_path)
    """

    host: str = "localhost"
    """Address to bind. "0.0.0.0" listens on every interface."""

    port: int = 4221
    """Port to listen on. 0 lets the OS pick a free one."""

    directory: Optional[str] = None
    """
    Storage directory for /files/. Must already exist; it is never
    created. None disables file storage.
    """

    backlog: int = 128
    """Connections the kernel queues before refusing new ones."""

    buffer_size: int = 4096
    """Bytes per recv() call."""

    timeout: Optional[float] = None
    """
    First-request read timeout in seconds. None blocks until the client
    sends or closes.
    """

    keep_alive_timeout: float = 5.0
    """
    Seconds a connection may sit idle between requests. On expiry the
    connection is closed and its worker freed for other clients.
    """

    min_workers: int = 4
    max_workers: int = 32
    queue_size: int = 128
    """Connections that may wait for a free worker before being refused."""

    log_level: str = "INFO"
    log_format: str = "text"
    """Access log format: 'text' or 'json'."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Build a configuration from environment variables.

            RAWHTTP_HOST       Bind address      (default: localhost)
            RAWHTTP_PORT       Port              (default: 4221)
            RAWHTTP_DIRECTORY  Storage directory (default: none)
            RAWHTTP_WORKERS    Max workers       (default: 32)
            RAWHTTP_LOG_LEVEL  Logging level     (default: INFO)

        Raises:
            ValueError: If a numeric variable is not a number.
        """
        return cls(
            host=os.getenv("RAWHTTP_HOST", "localhost"),
            port=int(os.getenv("RAWHTTP_PORT", "4221")),
            directory=os.getenv("RAWHTTP_DIRECTORY") or None,
            max_workers=int(os.getenv("RAWHTTP_WORKERS", "32")),
            log_level=os.getenv("RAWHTTP_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Check every value, raising ValueError on the first bad one.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.keep_alive_timeout <= 0:
            raise ValueError("keep_alive_timeout must be > 0")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.directory is not None and not Path(self.directory).is_dir():
            raise ValueError(f"Storage directory does not exist: {self.directory}")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")
