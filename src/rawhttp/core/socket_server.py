"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

Owns the listening socket and the accept loop. Knows nothing about HTTP:
every accepted client socket is wrapped in a Connection and handed to a
callback.

=============================================================================
LIFECYCLE
=============================================================================

    open()       socket() → setsockopt() → bind() → listen()
                 Returns the bound (host, port); port 0 picks a free port.

    serve(cb)    Accept loop. BLOCKS until shutdown() is called.
                 Calls cb(Connection) for every accepted client.

    shutdown()   Ask the accept loop to stop. Safe from any thread and
                 from a signal handler. Idempotent.

    start(cb)    open() + serve(cb), for callers that don't need the
                 address in between.

    ┌─────────┐  open()  ┌──────────┐ serve() ┌─────────┐ shutdown() ┌─────────┐
    │ created │ ───────► │ listening│ ──────► │ serving │ ─────────► │ stopped │
    └─────────┘          └──────────┘         └─────────┘            └─────────┘

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR:
    Rebind immediately after a restart instead of failing with "Address
    already in use" while the old socket sits in TIME_WAIT.

TCP_NODELAY:
    Disable Nagle's algorithm so small responses go out immediately.

Accept timeout (1 s):
    accept() returns every second so the loop can notice shutdown().

=============================================================================
SIGNALS
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (kill, docker stop) trigger shutdown().
Python only allows installing signal handlers from the main thread, so
when serve() runs on any other thread (tests, embedding) signals are left
alone and the owner calls shutdown() itself.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


ACCEPT_TIMEOUT = 1.0


class SocketServer:
    """
    Low-level TCP server.

        server = SocketServer(config)
        host, port = server.open()
        server.serve(handle_connection)   # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set once the socket is listening, cleared again on cleanup
        self._listening = threading.Event()
        # Set when the accept loop has exited
        self._stopped = threading.Event()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def bound_address(self) -> Optional[Tuple[str, int]]:
        """Actual (host, port) the socket is bound to, or None if not open."""
        if self._socket is None:
            return None
        host, port = self._socket.getsockname()[:2]
        return host, port

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(ACCEPT_TIMEOUT)
        return sock

    def open(self) -> Tuple[str, int]:
        """
        Create, bind and listen.

        Returns:
            The bound (host, port).

        Raises:
            OSError: If the address cannot be bound.
        """
        if self._socket is not None:
            return self.bound_address

        sock = self._create_socket()
        try:
            sock.bind((self.config.host, self.config.port))
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise

        sock.listen(self.config.backlog)
        self._socket = sock
        self._stopped.clear()
        self._listening.set()

        host, port = self.bound_address
        logger.info(f"Server listening on {host}:{port}")
        return host, port

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread; leaving signal handlers alone")
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def serve(self, connection_handler: Callable[[Connection], None]):
        """
        Run the accept loop until shutdown(). Opens the socket first if
        open() has not been called.
        """
        self.open()
        self._running = True
        self._setup_signals()

        try:
            self._accept_loop(connection_handler)
        finally:
            self.close()

    def start(self, connection_handler: Callable[[Connection], None]):
        """open() and serve() in one call. Blocks until shutdown()."""
        self.serve(connection_handler)

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        while running:
            accept()            1 s timeout → re-check running
            Connection(...)     wrap the client socket
            handler(conn)       HTTPServer hands it to the pool
        """
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                # Listening socket closed under us, usually during shutdown
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
            )
            connection_handler(conn)

    def shutdown(self):
        """Stop accepting. The loop exits within ACCEPT_TIMEOUT seconds."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def close(self):
        """
        Release the listening socket and restore signal handlers.

        serve() calls this on exit. Call it directly only for a server
        that was opened but never served.
        """
        self._running = False
        self._restore_signals()

        if self._socket is None:
            return

        try:
            self._socket.close()
        except OSError:
            pass
        self._socket = None

        self._listening.clear()
        self._stopped.set()
        logger.info("Socket server stopped")

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """Block until open() has bound the socket. False on timeout."""
        return self._listening.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until the accept loop has exited. False on timeout."""
        return self._stopped.wait(timeout)
