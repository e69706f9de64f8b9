"""
=============================================================================
BASE MIDDLEWARE INTERFACE
=============================================================================

The middleware protocol and the pipeline that chains middleware around a
handler (Chain of Responsibility).

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Request ─────────────────────────────────────────────►            │
    │                                                                     │
    │   ┌──────────┐    ┌──────────────┐    ┌──────────────────┐          │
    │   │  Logging │───►│ router.handle│───►│ Compression(echo)│──► echo  │
    │   └──────────┘    └──────────────┘    └──────────────────┘          │
    │   [before] start                       [after] gzip body            │
    │   [after]  access log line                                          │
    │                                                                     │
    │   ◄───────────────────────────────────────────────── Response       │
    └─────────────────────────────────────────────────────────────────────┘

Two ways to apply middleware:

    MiddlewarePipeline.wrap(handler)   Global: every request passes through
                                       (the server wraps router.handle)
    Middleware.bind(handler)           Per route: only requests routed to
                                       that handler (gzip on /echo/)

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# The next middleware or the final handler
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Abstract base class for middleware.

    Subclasses implement __call__(request, next). Pre-process the request,
    call next(request) to continue the chain, post-process the response:

        class StampMiddleware(Middleware):
            def __call__(self, request, next):
                response = next(request)
                response.set_header("X-Stamp", "1")
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Process the request.

        Args:
            request: The incoming HTTP request
            next: The next handler in the chain

        Returns:
            HTTP response (from next() or short-circuited)
        """

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def bind(self, handler: NextHandler) -> NextHandler:
        """
        Wrap a single handler with this middleware.

            router.add_route("/echo/*message", CompressionMiddleware().bind(echo))

        The wrapper keeps the handler's __name__ so route names and logs
        still refer to the handler.
        """
        def bound(request: HTTPRequest) -> HTTPResponse:
            return self(request, handler)

        bound.__name__ = getattr(handler, "__name__", self.name)
        return bound


class MiddlewarePipeline:
    """
    Chains middleware around a final handler.

        pipeline = MiddlewarePipeline()
        pipeline.add(LoggingMiddleware())
        handler = pipeline.wrap(router.handle)

    First added is outermost: it sees the request first and the response
    last.
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Append middleware. Returns self for chaining."""
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Wrap a handler with every middleware in the pipeline.

        Given [MW1, MW2] and handler, wrapping runs in reverse so that
        the result is MW1 → MW2 → handler.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = middleware.bind(current)
        return current

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)
