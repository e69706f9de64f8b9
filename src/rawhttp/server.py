"""
=============================================================================
HTTP SERVER
=============================================================================

Wires the pieces together:

    ┌──────────────┐   Connection   ┌────────────┐   worker thread
    │ SocketServer │ ─────────────► │ ThreadPool │ ─────────────────┐
    └──────────────┘                └────────────┘                  │
                                                                    ▼
    ┌────────────────────────────────────────────────────────────────────┐
    │  _process_connection(conn)                                         │
    │                                                                    │
    │   loop until the client closes:                                    │
    │     request  = conn.read_request()        IncrementalParser        │
    │     response = handler(request)           Logging → Router         │
    │     conn.send_response(format_response(response))                  │
    └────────────────────────────────────────────────────────────────────┘

=============================================================================
LIFECYCLE
=============================================================================

    server = HTTPServer(ServerConfig(directory="/tmp/data"))

    server.start()           Start workers, bind and listen. Returns the
                             bound (host, port). Does not block.
    server.serve_forever()   Accept loop. Blocks until stop().
    server.stop()            Stop accepting, shut live connections down,
                             stop the workers. Safe from any thread.

    server.run()             All of the above for the CLI: configures
                             logging, blocks until Ctrl+C / SIGTERM.

=============================================================================
ERRORS PER CONNECTION
=============================================================================

    Malformed request line or Content-Length   400, then close
    Handler raised                             500 (Router.handle)
    Send failed                                close this connection only
    Idle past keep_alive_timeout               close this connection only
    Pool queue full                            503, then close

None of these affect other connections.

=============================================================================
"""

import logging
import threading
from typing import Optional, Callable, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool
from .handlers import create_router
from .http import (
    HTTPRequest,
    HTTPParseError,
    HTTPResponse,
    ResponseBuilder,
    Router,
    format_response,
    internal_error,
    service_unavailable,
)
from .middleware import MiddlewarePipeline, Middleware, LoggingMiddleware


logger = logging.getLogger(__name__)


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class HTTPServer:
    """
    HTTP/1.1 server over raw sockets.

        server = HTTPServer(ServerConfig(port=4221, directory="/tmp/data"))
        server.run()

    Or, when the caller owns the thread (tests, embedding):

        server = HTTPServer(ServerConfig(port=0))
        host, port = server.start()
        threading.Thread(target=server.serve_forever, daemon=True).start()
        ...
        server.stop()

    The route table comes from create_router(config.directory) unless a
    router is passed in. Access logging is always installed; use() adds
    more global middleware inside it.
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        """
        Args:
            config: Server configuration. Validated immediately.
            router: Route table. Defaults to the standard routes.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )

        self._router = router or create_router(self.config.directory)
        self._middleware = MiddlewarePipeline()
        self._middleware.add(LoggingMiddleware(log_format=self.config.log_format))
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None

        self._connections: set[Connection] = set()
        self._lock = threading.Lock()  # Guards _connections and _running
        self._running = False

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    @property
    def router(self) -> Router:
        return self._router

    @property
    def server_address(self) -> Optional[Tuple[str, int]]:
        """Bound (host, port) once started, else None."""
        return self._socket_server.bound_address

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_serving(self) -> bool:
        """True while the accept loop is running."""
        return self._socket_server.is_running

    def use(self, middleware: Middleware) -> "HTTPServer":
        """
        Add global middleware. Must be called before start().

        Returns:
            Self for method chaining.
        """
        self._middleware.add(middleware)
        return self

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> Tuple[str, int]:
        """
        Start the workers and open the listening socket.

        Returns:
            The bound (host, port).

        Raises:
            RuntimeError: If already started.
            OSError: If the address cannot be bound.
        """
        with self._lock:
            if self._running:
                raise RuntimeError("Server already started")
            self._running = True

        self._handler = self._middleware.wrap(self._router.handle)
        self._thread_pool.start()

        try:
            address = self._socket_server.open()
        except OSError:
            self.stop()
            raise

        logger.info(f"Serving on http://{address[0]}:{address[1]}")
        if self.config.directory is not None:
            logger.info(f"Storage directory: {self.config.directory}")
        return address

    def serve_forever(self):
        """Run the accept loop until stop(). Calls start() if needed."""
        if not self._running:
            self.start()
        self._socket_server.serve(self._handle_connection)

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Configure logging and serve until interrupted (blocking).

        Args:
            host: Override config host.
            port: Override config port.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()

        try:
            self.serve_forever()
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self.stop()

    def stop(self):
        """
        Stop the server. Idempotent.

        1. Stop accepting new connections
        2. Shut down live connections (their workers see EOF)
        3. Stop the worker pool
        """
        with self._lock:
            if not self._running:
                return
            self._running = False
            connections = list(self._connections)

        logger.info("Shutting down server...")

        serving = self._socket_server.is_running
        self._socket_server.shutdown()

        for conn in connections:
            conn.abort()

        if serving:
            self._socket_server.wait_for_shutdown(timeout=5.0)
        else:
            self._socket_server.close()

        self._thread_pool.shutdown(timeout=5.0)
        logger.info("Server stopped")

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        logging.getLogger("rawhttp").setLevel(level)

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Hand an accepted connection to the pool (accept-loop thread)."""
        try:
            submitted = self._thread_pool.submit(self._process_connection, args=(conn,))
        except RuntimeError:
            # Pool is shutting down
            conn.close()
            return

        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            conn.send_response(format_response(service_unavailable("Server overloaded")))
            conn.close()

    def _process_connection(self, conn: Connection):
        """
        Serve one connection until it closes (worker thread).

        Requests are handled strictly one at a time: the next request is
        not read until the previous response has been written.
        """
        with self._lock:
            if not self._running:
                conn.close()
                return
            self._connections.add(conn)

        try:
            with conn:
                while self._running:
                    try:
                        request = conn.read_request()
                    except HTTPParseError as e:
                        logger.warning(f"[{conn.id}] Bad request from {conn.client_ip}: {e}")
                        self._send_error(conn, e.status_code, "Bad Request")
                        break
                    except TimeoutError as e:
                        logger.debug(str(e))
                        break

                    if request is None:
                        break

                    response = self._dispatch(conn, request)

                    if not conn.send_response(format_response(response)):
                        break
        finally:
            with self._lock:
                self._connections.discard(conn)

    def _dispatch(self, conn: Connection, request: HTTPRequest) -> HTTPResponse:
        """Run the middleware chain; anything it raises becomes a 500."""
        try:
            return self._handler(request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error: {e}")
            return internal_error()

    def _send_error(self, conn: Connection, status: int, message: str):
        """Send an error generated outside the router (parse errors, overload)."""
        response = ResponseBuilder().status(status).text(message).build()
        conn.send_response(format_response(response))


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Build a server with the standard routes.

        app = create_app(ServerConfig(directory="/tmp/data"))
        app.run()
    """
    return HTTPServer(config)
