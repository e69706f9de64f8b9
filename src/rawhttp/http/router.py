"""
=============================================================================
URL ROUTER
=============================================================================

Maps a request's method and target to a handler function.

Supports:
- Static paths:   /, /user-agent
- Parameters:     /users/:id            (one path segment)
- Wildcards:      /echo/*message        (everything after the prefix)
- Method filters: GET, POST, or None for any method

=============================================================================
ROUTING FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   GET /files/report.txt                                             │
    │        │                                                            │
    │        ▼                                                            │
    │   ┌──────────────────────────────────────────────────────────────┐  │
    │   │  ANY  /                → root                                │  │
    │   │  ANY  /echo/*message   → echo (gzip-aware)                   │  │
    │   │  ANY  /user-agent      → user_agent                          │  │
    │   │  POST /files/*filename → files.write                         │  │
    │   │  GET  /files/*filename → files.read        ← MATCH!          │  │
    │   └──────────────────────────────────────────────────────────────┘  │
    │        │   path_params = {"filename": "report.txt"}                 │
    │        ▼                                                            │
    │   files.read(request)                                               │
    └─────────────────────────────────────────────────────────────────────┘

Routes are tried in registration order; the first match wins. A target
no route matches gets 404 Not Found with an empty body, and so does a
target that only matches routes registered for another method.

The target is matched verbatim. No trailing-slash normalization, no URL
decoding, no query-string stripping: "/echo/" matches "/echo/*message"
with message "" and "/user-agent/" is a 404.

=============================================================================
PATTERN COMPILATION
=============================================================================

    Pattern:  /files/*filename
    Regex:    ^/files/(?P<filename>.*)$

    Pattern:  /users/:id
    Regex:    ^/users/(?P<id>[^/]+)$

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Dict, List
import logging
import re

from .request import HTTPRequest
from .response import HTTPResponse, not_found, internal_error


logger = logging.getLogger(__name__)


# Handler: takes a request, returns a response
Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """A URL pattern bound to a handler."""

    path: str                        # Pattern as registered, e.g. /echo/*message
    method: Optional[str]            # None = any method
    handler: Handler
    name: Optional[str] = None

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)


@dataclass
class RouteMatch:
    """The matched route and the path parameters it captured."""

    route: Route
    params: Dict[str, str]


class Router:
    """
    Ordered route table with decorator registration.

        router = Router()

        @router.get("/files/*filename")
        def read_file(request):
            name = request.path_params["filename"]
            ...

    handle() is the error boundary of request processing: whatever a
    handler raises is logged and turned into a 500 response.
    """

    def __init__(self):
        self._routes: List[Route] = []

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Route:
        """
        Register a route.

        Args:
            path: URL pattern (e.g. /echo/*message)
            handler: Function taking a request and returning a response
            method: HTTP method, or None to match any method
            name: Optional label, shown in debug logs

        Returns:
            The registered Route.
        """
        pattern, param_names = self._compile_pattern(path)

        route = Route(
            path=path,
            method=method.upper() if method else None,
            handler=handler,
            name=name or getattr(handler, "__name__", None),
            _pattern=pattern,
            _param_names=param_names,
        )
        self._routes.append(route)
        return route

    def _compile_pattern(self, path: str) -> tuple[re.Pattern, List[str]]:
        """
        Compile a route pattern into an anchored regex.

            ""         → skipped (leading slash)
            "files"    → /files
            ":id"      → /(?P<id>[^/]+)
            "*name"    → /(?P<name>.*)      (may be empty, must be last)

        A pattern with no segments at all ("/") compiles to ^/$.
        """
        param_names: List[str] = []
        regex_parts = ["^"]

        for segment in path.split("/"):
            if not segment:
                continue

            regex_parts.append("/")

            if segment.startswith(":"):
                param_name = segment[1:]
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>[^/]+)")

            elif segment.startswith("*"):
                param_name = segment[1:] or "wildcard"
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>.*)")
                break

            else:
                regex_parts.append(re.escape(segment))

        if len(regex_parts) == 1:
            regex_parts.append("/")

        regex_parts.append("$")
        # DOTALL so a wildcard keeps a stray LF in the target
        return re.compile("".join(regex_parts), re.DOTALL), param_names

    # =========================================================================
    # ROUTE MATCHING
    # =========================================================================

    def match(self, method: str, target: str) -> Optional[RouteMatch]:
        """
        Find the first route matching method and target.

        Returns:
            RouteMatch if found, None otherwise.
        """
        for route in self._routes:
            if route.method and route.method != method.upper():
                continue

            match = route._pattern.fullmatch(target)
            if match:
                return RouteMatch(route=route, params=match.groupdict())

        return None

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route a request and return exactly one response.

        1. No matching route     → 404, empty body
        2. Handler returns       → its response
        3. Handler raises        → 500, logged with traceback
        """
        match = self.match(request.method, request.target)
        if match is None:
            logger.debug(f"No route for {request.method} {request.target}")
            return not_found()

        request.path_params = match.params

        try:
            return match.route.handler(request)
        except Exception:
            logger.exception(
                f"Handler {match.route.name} failed for {request.method} {request.target}"
            )
            return internal_error()

    def routes(self) -> List[Route]:
        """All registered routes, in match order."""
        return list(self._routes)

    # =========================================================================
    # DECORATOR-STYLE ROUTE REGISTRATION
    # =========================================================================

    def route(
        self,
        path: str,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Callable[[Handler], Handler]:
        """
        Decorator form of add_route().

            @router.route("/user-agent")
            def user_agent(request):
                ...
        """
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method, name)
            return handler
        return decorator

    def get(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        """Register a GET route."""
        return self.route(path, "GET", name)

    def post(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        """Register a POST route."""
        return self.route(path, "POST", name)
