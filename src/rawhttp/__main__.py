"""
=============================================================================
CLI ENTRY POINT
=============================================================================

    # Defaults: localhost:4221, no storage directory
    python -m rawhttp

    # Serve /files/ from a directory
    python -m rawhttp --directory /tmp/data

    # All interfaces, more workers, JSON access log
    python -m rawhttp --host 0.0.0.0 --workers 64 --log-format json

Installed as the `rawhttp` console script as well.

Settings are layered: command-line flags override RAWHTTP_* environment
variables, which override the ServerConfig defaults.

=============================================================================
"""

import argparse
import sys
from typing import Optional, Sequence

from . import __version__
from .config import ServerConfig, LOG_FORMATS
from .server import HTTPServer


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="rawhttp",
        description="Minimal HTTP/1.1 server on raw sockets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m rawhttp                         # localhost:4221
  python -m rawhttp --directory /tmp/data   # enable /files/
  python -m rawhttp --port 8080 --log-level DEBUG
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: localhost)",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 4221)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # STORAGE AND WORKERS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--directory", "-d",
        default=None,
        help="Existing directory backing /files/ (default: none, storage disabled)",
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Maximum worker threads (default: 32)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help="Access log format (default: text)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"rawhttp {__version__}",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ServerConfig:
    """
    Environment first, then any flag that was given on top.

    Raises:
        ValueError: If an RAWHTTP_* variable is malformed.
    """
    config = ServerConfig.from_env()

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.directory is not None:
        config.directory = args.directory
    if args.workers is not None:
        config.max_workers = args.workers
        config.min_workers = min(config.min_workers, args.workers)
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_format is not None:
        config.log_format = args.log_format

    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Parse arguments, build the server, run until interrupted."""
    args = parse_args(argv)

    try:
        config = build_config(args)
        server = HTTPServer(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
