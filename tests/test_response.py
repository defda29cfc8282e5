"""Test for ResponseWriter and it's functionality."""
from pytest import fixture, mark, raises

from poorcontext.headers import Headers
from poorcontext.response import (HTTPException, ResponseWriter, abort,
                                  status_text)
from poorcontext.state import (HTTP_CREATED, HTTP_NO_CONTENT,
                               HTTP_NOT_FOUND, HTTP_NOT_MODIFIED, HTTP_OK)

# pylint: disable=missing-function-docstring
# pylint: disable=redefined-outer-name
# pylint: disable=no-self-use


class StartResponse:
    """Collect arguments of start_response call."""

    def __init__(self):
        self.status = None
        self.headers = None

    def __call__(self, status, headers):
        assert isinstance(status, str)
        assert isinstance(headers, list)
        self.status = status
        self.headers = Headers(headers, strict=False)


@fixture
def writer():
    return ResponseWriter()


@fixture
def start_response():
    return StartResponse()


class TestWriteHeader:
    """Status and headers are written only once."""

    def test_implicit(self, writer):
        assert writer.status_code is None
        assert not writer.written
        assert writer.write("Hello") == 5
        assert writer.status_code == HTTP_OK
        assert writer.reason == "OK"

    def test_explicit(self, writer):
        writer.write_header(HTTP_CREATED, {"X-Test": "Ok"})
        assert writer.status_code == HTTP_CREATED
        assert writer.sent_headers["X-Test"] == "Ok"

    def test_once(self, writer):
        writer.write_header(HTTP_NOT_FOUND)
        writer.write_header(HTTP_OK)
        writer.write(b"data")
        assert writer.status_code == HTTP_NOT_FOUND

    def test_late_headers(self, writer, start_response):
        writer.headers.set("X-Early", "yes")
        writer.write("body")
        writer.headers.set("X-Late", "ignored")
        writer(start_response)
        assert start_response.headers["X-Early"] == "yes"
        assert "X-Late" not in start_response.headers

    def test_overlay(self):
        writer = ResponseWriter([("Vary", "Accept"), ("X-Test", "Ok")])
        writer.write_header(HTTP_OK, Headers([("Vary", "Cookie")]))
        assert writer.sent_headers.get_all("Vary") == ("Cookie",)
        assert writer.sent_headers["X-Test"] == "Ok"

    @mark.parametrize("status_code", (99, 1000, -200))
    def test_bad_status(self, writer, status_code):
        with raises(ValueError):
            writer.write_header(status_code)

    def test_unknown_status(self, writer):
        writer.write_header(499)
        assert writer.status_code == 499
        assert writer.reason == ""


class TestCall:
    """WSGI start_response and body."""

    def test_body(self, writer, start_response):
        writer.write("Hello ")
        writer.write(b"World")
        body = writer(start_response)
        assert start_response.status == "200 OK"
        assert b"".join(body) == b"Hello World"
        assert start_response.headers["Content-Length"] == "11"
        assert start_response.headers["Content-Type"] == \
            "text/html; charset=utf-8"

    def test_empty(self, writer, start_response):
        body = writer(start_response)
        assert start_response.status == "200 OK"
        assert start_response.headers["Content-Length"] == "0"
        assert "Content-Type" not in start_response.headers
        assert body.read() == b""

    def test_content_type(self, writer, start_response):
        writer.headers.set("Content-Type", "text/plain")
        writer.write("x")
        writer(start_response)
        assert start_response.headers.get_all("Content-Type") == \
            ("text/plain",)

    def test_no_content(self, writer, start_response):
        writer.write_header(HTTP_NO_CONTENT)
        writer(start_response)
        assert start_response.status == "204 No Content"
        assert "Content-Length" not in start_response.headers

    def test_unknown_status(self, writer, start_response):
        writer.write_header(499)
        writer.write("x")
        writer(start_response)
        assert start_response.status == "499 "

    def test_not_modified(self, writer, start_response):
        writer.write_header(HTTP_NOT_MODIFIED)
        writer(start_response)
        assert "Content-Length" not in start_response.headers

    def test_once(self, writer, start_response):
        writer(start_response)
        with raises(RuntimeError):
            writer(start_response)

    def test_data(self, writer):
        writer.write("ž")
        assert writer.data == "ž".encode("utf-8")
        assert writer.content_length == 2


class TestHTTPException:
    """HTTPException and abort."""

    def test_abort(self):
        with raises(HTTPException) as err:
            abort(HTTP_NOT_FOUND)
        assert err.value.status_code == HTTP_NOT_FOUND

    def test_status_text(self):
        assert status_text(HTTP_NOT_FOUND) == "Not Found"
        assert status_text(418) == "I'm a teapot"
        assert status_text(999) == ""
