"""
Unit tests for HTTP response building and formatting.
"""

import http.client
import io

import pytest

from rawhttp.http.response import (
    HTTPResponse,
    ResponseBuilder,
    format_response,
    ok,
    created,
    not_found,
    bad_request,
    internal_error,
)
from rawhttp.http.status_codes import HTTPStatus, reason_phrase


class _FakeSocket:
    """Just enough of a socket for http.client.HTTPResponse."""

    def __init__(self, data: bytes):
        self._file = io.BytesIO(data)

    def makefile(self, mode, *args, **kwargs):
        return self._file


def reference_parse(data: bytes) -> http.client.HTTPResponse:
    """Parse response bytes with the standard library's HTTP client."""
    response = http.client.HTTPResponse(_FakeSocket(data))
    response.begin()
    return response


class TestHTTPResponse:
    """Tests for HTTPResponse and format_response."""

    def test_bare_ok(self):
        """A default response is exactly the status line and a blank line."""
        assert format_response(HTTPResponse()) == b"HTTP/1.1 200 OK\r\n\r\n"

    def test_status_line(self):
        response = HTTPResponse(status_code=404, status_message="Not Found")
        assert response.status_line == "HTTP/1.1 404 Not Found"

    def test_headers_in_insertion_order(self):
        response = HTTPResponse(
            headers={"Content-Type": "text/plain", "Content-Length": "3", "X-Last": "1"},
            body=b"abc",
        )

        assert response.to_bytes() == (
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: text/plain\r\n"
            b"Content-Length: 3\r\n"
            b"X-Last: 1\r\n"
            b"\r\n"
            b"abc"
        )

    def test_no_automatic_headers(self):
        """Nothing is added: no Content-Length, Date or Server."""
        result = HTTPResponse(body=b"hello").to_bytes()

        assert result == b"HTTP/1.1 200 OK\r\n\r\nhello"

    def test_binary_body_verbatim(self):
        body = bytes(range(256))
        result = format_response(HTTPResponse(body=body))

        assert result.endswith(b"\r\n\r\n" + body)

    def test_custom_version_and_message(self):
        response = HTTPResponse(version="HTTP/1.0", status_code=299, status_message="Fine")

        assert format_response(response) == b"HTTP/1.0 299 Fine\r\n\r\n"

    def test_set_header_chaining(self):
        response = (HTTPResponse()
            .set_header("X-One", "1")
            .set_header("X-Two", "2"))

        assert list(response.headers) == ["X-One", "X-Two"]

    def test_reference_parser_accepts_output(self):
        """http.client reads back the same status, headers and body."""
        response = ok("hello world")

        parsed = reference_parse(format_response(response))

        assert parsed.status == 200
        assert parsed.reason == "OK"
        assert parsed.getheader("Content-Type") == "text/plain"
        assert parsed.getheader("Content-Length") == "11"
        assert parsed.read() == b"hello world"


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_defaults(self):
        response = ResponseBuilder().build()

        assert response.version == "HTTP/1.1"
        assert response.status_code == 200
        assert response.status_message == "OK"
        assert response.headers == {}
        assert response.body == b""

    def test_status_defaults_reason_phrase(self):
        response = ResponseBuilder().status(HTTPStatus.CREATED).build()

        assert response.status_code == 201
        assert response.status_message == "Created"

    def test_status_with_message(self):
        response = ResponseBuilder().status(404, "Nope").build()

        assert response.status_line == "HTTP/1.1 404 Nope"

    def test_unknown_status_empty_phrase(self):
        assert ResponseBuilder().status(299).build().status_message == ""

    def test_text_sets_type_and_length(self):
        response = ResponseBuilder().text("héllo").build()

        assert response.body == "héllo".encode("utf-8")
        assert response.headers == {
            "Content-Type": "text/plain",
            "Content-Length": "6",
        }

    def test_body_leaves_headers_alone(self):
        response = ResponseBuilder().body(b"abc").build()

        assert response.headers == {}
        assert response.body == b"abc"

    def test_content_length_after_body(self):
        response = ResponseBuilder().body(b"abcd").content_length().build()

        assert response.headers["Content-Length"] == "4"

    def test_version(self):
        assert ResponseBuilder().version("HTTP/1.0").build().version == "HTTP/1.0"

    def test_build_copies_headers(self):
        """Responses built from the same builder don't share headers."""
        builder = ResponseBuilder().header("X-A", "1")
        first = builder.build()
        first.set_header("X-B", "2")

        assert builder.build().headers == {"X-A": "1"}

    def test_to_bytes(self):
        assert ResponseBuilder().status(404).to_bytes() == b"HTTP/1.1 404 Not Found\r\n\r\n"


class TestConvenienceFunctions:
    """Tests for ok(), created(), not_found(), ..."""

    def test_ok_bytes(self):
        response = ok(b"\x00\x01", "application/octet-stream")

        assert response.status_code == 200
        assert response.headers == {
            "Content-Type": "application/octet-stream",
            "Content-Length": "2",
        }

    def test_created_is_bare(self):
        assert format_response(created()) == b"HTTP/1.1 201 Created\r\n\r\n"

    def test_not_found_is_bare(self):
        assert format_response(not_found()) == b"HTTP/1.1 404 Not Found\r\n\r\n"

    def test_bad_request(self):
        response = bad_request("Missing User-Agent header")

        assert response.status_code == 400
        assert response.body == b"Missing User-Agent header"
        assert response.headers["Content-Length"] == str(len(response.body))

    def test_internal_error(self):
        response = internal_error()

        assert response.status_code == 500
        assert response.status_message == "Internal Server Error"


class TestStatusCodes:

    @pytest.mark.parametrize("code,phrase", [
        (200, "OK"),
        (201, "Created"),
        (400, "Bad Request"),
        (404, "Not Found"),
        (500, "Internal Server Error"),
    ])
    def test_reason_phrase(self, code: int, phrase: str):
        assert reason_phrase(code) == phrase

    def test_categories(self):
        assert HTTPStatus.OK.is_success
        assert HTTPStatus.NOT_FOUND.is_client_error
        assert HTTPStatus.INTERNAL_SERVER_ERROR.is_server_error
        assert HTTPStatus.BAD_REQUEST.is_error
        assert not HTTPStatus.CREATED.is_error
