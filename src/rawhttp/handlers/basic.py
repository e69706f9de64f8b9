"""
Handlers for the routes that never touch storage: /, /echo/*, /user-agent.
"""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, bad_request


def root(request: HTTPRequest) -> HTTPResponse:
    """200 OK with no headers and no body: b"HTTP/1.1 200 OK\\r\\n\\r\\n"."""
    return ResponseBuilder().build()


def echo(request: HTTPRequest) -> HTTPResponse:
    """
    Reflect the target remainder after "/echo/" as a text/plain body.

    The remainder is used verbatim (it may be empty). gzip is applied by
    the CompressionMiddleware bound to this handler, not here.
    """
    message = request.path_params.get("message", "")
    return ResponseBuilder().text(message).build()


def user_agent(request: HTTPRequest) -> HTTPResponse:
    """Reflect the User-Agent header; 400 if the client sent none."""
    agent = request.user_agent
    if agent is None:
        return bad_request("Missing User-Agent header")

    return ResponseBuilder().text(agent).build()
