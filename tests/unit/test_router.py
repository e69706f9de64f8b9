"""
Unit tests for the URL router.
"""

import logging

import pytest

from rawhttp.http.router import Router
from rawhttp.http.request import HTTPRequest
from rawhttp.http.response import HTTPResponse, ResponseBuilder


def make_request(method: str, target: str) -> HTTPRequest:
    """Helper to create a request for testing."""
    return HTTPRequest(method=method, target=target)


def dummy_handler(request: HTTPRequest) -> HTTPResponse:
    return ResponseBuilder().text(request.target).build()


class TestRouter:
    """Tests for Router class."""

    def test_add_route(self):
        router = Router()
        router.add_route("/users", dummy_handler, method="get")

        routes = router.routes()
        assert len(routes) == 1
        assert routes[0].path == "/users"
        assert routes[0].method == "GET"
        assert routes[0].name == "dummy_handler"

    def test_match_root(self):
        """"/" matches only "/"."""
        router = Router()
        router.add_route("/", dummy_handler)

        assert router.match("GET", "/") is not None
        assert router.match("GET", "") is None
        assert router.match("GET", "/x") is None

    def test_match_static_path_exactly(self):
        """No trailing-slash normalization."""
        router = Router()
        router.add_route("/user-agent", dummy_handler)

        assert router.match("GET", "/user-agent") is not None
        assert router.match("GET", "/user-agent/") is None
        assert router.match("GET", "/user-agents") is None

    def test_match_with_method(self):
        router = Router()
        router.add_route("/files/*name", dummy_handler, method="POST")
        router.add_route("/files/*name", dummy_handler, method="GET")

        assert router.match("POST", "/files/a").route.method == "POST"
        assert router.match("GET", "/files/a").route.method == "GET"
        assert router.match("PUT", "/files/a") is None

    def test_route_without_method_matches_any(self):
        router = Router()
        router.add_route("/echo/*message", dummy_handler)

        for method in ("GET", "POST", "DELETE", "BREW"):
            assert router.match(method, "/echo/x") is not None

    def test_match_dynamic_params(self):
        router = Router()
        router.add_route("/users/:id", dummy_handler)

        assert router.match("GET", "/users/123").params == {"id": "123"}
        assert router.match("GET", "/users/1/2") is None

    def test_wildcard_captures_remainder_verbatim(self):
        router = Router()
        router.add_route("/echo/*message", dummy_handler)

        assert router.match("GET", "/echo/abc").params == {"message": "abc"}
        assert router.match("GET", "/echo/a/b%20c?d").params == {"message": "a/b%20c?d"}

    def test_wildcard_may_be_empty(self):
        router = Router()
        router.add_route("/echo/*message", dummy_handler)

        assert router.match("GET", "/echo/").params == {"message": ""}
        assert router.match("GET", "/echo") is None

    def test_trailing_newline_not_ignored(self):
        """A bare LF left in the target is part of it, not an end-of-line."""
        router = Router()
        router.add_route("/", dummy_handler)
        router.add_route("/user-agent", dummy_handler)
        router.add_route("/echo/*message", dummy_handler)

        assert router.match("GET", "/\n") is None
        assert router.match("GET", "/user-agent\n") is None
        assert router.match("GET", "/echo/abc\n").params == {"message": "abc\n"}

    def test_first_match_wins(self):
        router = Router()
        router.add_route("/files/special", lambda r: ResponseBuilder().status(201).build())
        router.add_route("/files/*name", dummy_handler)

        assert router.handle(make_request("GET", "/files/special")).status_code == 201
        assert router.handle(make_request("GET", "/files/other")).status_code == 200


class TestRouterHandle:
    """Tests for Router.handle()."""

    def test_sets_path_params(self):
        router = Router()
        seen = {}

        def handler(request: HTTPRequest) -> HTTPResponse:
            seen.update(request.path_params)
            return ResponseBuilder().build()

        router.add_route("/files/*filename", handler)
        router.handle(make_request("GET", "/files/report.txt"))

        assert seen == {"filename": "report.txt"}

    def test_unknown_route_404_empty(self):
        response = Router().handle(make_request("GET", "/nowhere"))

        assert response.status_code == 404
        assert response.body == b""
        assert response.headers == {}

    def test_wrong_method_is_404(self):
        """A path registered only for another method falls through to 404."""
        router = Router()
        router.add_route("/files/*name", dummy_handler, method="GET")

        assert router.handle(make_request("DELETE", "/files/a")).status_code == 404

    def test_handler_exception_becomes_500(self, caplog: pytest.LogCaptureFixture):
        router = Router()

        def broken(request: HTTPRequest) -> HTTPResponse:
            raise KeyError("boom")

        router.add_route("/", broken)

        with caplog.at_level(logging.ERROR, logger="rawhttp.http.router"):
            response = router.handle(make_request("GET", "/"))

        assert response.status_code == 500
        assert "broken" in caplog.text


class TestDecorators:
    """Tests for decorator-style registration."""

    def test_get_and_post(self):
        router = Router()

        @router.get("/files/*name")
        def read(request):
            return ResponseBuilder().status(200).build()

        @router.post("/files/*name")
        def write(request):
            return ResponseBuilder().status(201).build()

        assert router.handle(make_request("GET", "/files/a")).status_code == 200
        assert router.handle(make_request("POST", "/files/a")).status_code == 201

    def test_route_returns_handler_unchanged(self):
        router = Router()

        @router.route("/")
        def index(request):
            return ResponseBuilder().build()

        assert index.__name__ == "index"
        assert router.routes()[0].handler is index
