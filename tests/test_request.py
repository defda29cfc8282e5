"""Test for request module fuctionality."""
from io import BytesIO

from pytest import fixture, raises

from poorcontext.fieldstorage import NotMultipart
from poorcontext.request import EmptyBody, Request
from poorcontext.state import METHOD_HEAD, METHOD_POST

# pylint: disable=missing-function-docstring
# pylint: disable=no-self-use
# pylint: disable=redefined-outer-name

BOUNDARY = "----WebKitFormBoundaryNbcDXbbrawsQmAuL"

MULTIPART = (
    b'------WebKitFormBoundaryNbcDXbbrawsQmAuL\r\n'
    b'Content-Disposition: form-data; name="file"; '
    b'filename="text_file.txt"\r\nContent-Type: text/plain\r\n\r\n'
    b'\xc4\x8ce\xc5\xa1tina\n\r\n'
    b'------WebKitFormBoundaryNbcDXbbrawsQmAuL\r\n'
    b'Content-Disposition: form-data; name="btn"\r\n\r\nUpload\r\n'
    b'------WebKitFormBoundaryNbcDXbbrawsQmAuL--\r\n'
)


def environ(method="GET", query="", body=None, ctype=None, **kwargs):
    env = {
        "REQUEST_METHOD": method,
        "PATH_INFO": "/test",
        "QUERY_STRING": query,
        "SERVER_PROTOCOL": "HTTP/1.1",
        "REMOTE_ADDR": "127.0.0.1",
        "wsgi.url_scheme": "http",
    }
    if body is not None:
        env["wsgi.input"] = BytesIO(body)
        env["CONTENT_LENGTH"] = str(len(body))
    if ctype:
        env["CONTENT_TYPE"] = ctype
    env.update(kwargs)
    return env


@fixture
def urlencoded():
    return Request(environ(
        "POST", "x=query", b"name=Ond%C5%99ej&x=8&x=7&btn=Send",
        "application/x-www-form-urlencoded"))


@fixture
def multipart():
    return Request(environ(
        "POST", "q=1", MULTIPART, f"multipart/form-data; boundary={BOUNDARY}"))


class TestRequest:
    """Basic request properties."""

    def test_no_path(self):
        with raises(ConnectionError):
            Request({})

    def test_properties(self):
        req = Request(environ("HEAD", "a=1", HTTP_X_TEST="Ok",
                              HTTP_ACCEPT_LANGUAGE="cs"))
        assert req.method == "HEAD"
        assert req.method_number == METHOD_HEAD
        assert req.path == "/test"
        assert req.full_path == "/test?a=1"
        assert req.remote_addr == "127.0.0.1"
        assert req.scheme == "http"
        assert req.headers["X-Test"] == "Ok"
        assert req.get_header("accept-language") == "cs"
        assert req.get_header("X-Missing") == ""
        assert req.content_length == -1
        assert not req.is_body_request

    def test_utf8_path(self):
        req = Request(environ(PATH_INFO="/ž".encode().decode("iso-8859-1")))
        assert req.path == "/ž"

    def test_content_type(self):
        req = Request(environ("POST", body=b"{}",
                              ctype="Application/JSON; charset=latin-1"))
        assert req.method_number == METHOD_POST
        assert req.mime_type == "application/json"
        assert req.charset == "latin-1"
        assert req.content_length == 2

    def test_unknown_charset(self):
        req = Request(environ("POST", body=b"n=%C5%BE",
                              ctype="application/x-www-form-urlencoded; "
                                    "charset=bogus"))
        assert req.charset == "utf-8"
        assert req.form.get("n") == "ž"


class TestArgs:
    """Query string values."""

    def test_empty(self):
        req = Request(environ())
        assert not req.args
        assert req.args.get("no") == ""

    def test_values(self):
        req = Request(environ(query="n=Alice&a=30&a=31&e="))
        assert req.args.get("n") == "Alice"
        assert req.args["a"] == ["30", "31"]
        assert req.args["e"] == [""]

    def test_blank_values(self):
        req = Request(environ(query="e=&n=1"), keep_blank_values=False)
        assert "e" not in req.args


class TestForm:
    """Body values."""

    def test_urlencoded(self, urlencoded):
        assert urlencoded.post_form.get("name") == "Ondřej"
        assert urlencoded.post_form["x"] == ["8", "7"]
        assert urlencoded.form["x"] == ["8", "7", "query"]
        assert urlencoded.args["x"] == ["query"]
        assert urlencoded.files == {}

    def test_multipart(self, multipart):
        assert multipart.post_form.get("btn") == "Upload"
        assert multipart.form.get("q") == "1"
        upload = multipart.files["file"][0]
        assert upload.filename == "text_file.txt"
        assert upload.read().decode("utf-8") == "Čeština\n"

    def test_get_method(self):
        req = Request(environ("GET", body=b"name=x",
                              ctype="application/x-www-form-urlencoded"))
        assert not req.post_form
        assert req.read_body() == b"name=x"

    def test_other_type(self):
        req = Request(environ("POST", body=b"name=x", ctype="text/plain"))
        assert not req.form
        assert req.read_body() == b"name=x"

    def test_body_before_form(self):
        req = Request(environ("POST", body=b"name=x",
                              ctype="application/x-www-form-urlencoded"))
        assert req.read_body() == b"name=x"
        assert req.form.get("name") == "x"

    def test_body_after_form(self, urlencoded):
        assert urlencoded.form
        assert urlencoded.read_body() == b""

    def test_max_memory(self):
        req = Request(environ(), max_memory=10)
        req.max_memory = 20
        assert req.max_memory == 20


class TestMultipart:
    """Multipart parsing with memory limit."""

    def test_parse_multipart(self, multipart):
        files = multipart.parse_multipart(max_memory=1)
        assert multipart.max_memory == 1
        assert list(files) == ["file"]
        assert multipart.parse_multipart(max_memory=100) is files
        assert multipart.max_memory == 1

    def test_not_multipart(self, urlencoded):
        with raises(NotMultipart):
            urlencoded.parse_multipart()

    def test_input(self, urlencoded):
        assert urlencoded.input.read()[:4] == b"name"


class TestBody:
    """Raw body reading."""

    def test_no_input(self):
        req = Request(environ("POST"))
        with raises(EmptyBody):
            req.read_body()

    def test_content_length(self):
        env = environ("POST", body=b"Hello World")
        env["CONTENT_LENGTH"] = "5"
        assert Request(env).read_body() == b"Hello"

    def test_cached(self):
        req = Request(environ("PUT", body=b"data"))
        assert req.read_body() == b"data"
        assert req.read_body() == b"data"

    def test_no_length(self):
        env = environ("POST", body=b"data")
        del env["CONTENT_LENGTH"]
        assert Request(env).read_body() == b""

    def test_input_terminated(self):
        env = environ("POST", body=b"chunked data")
        del env["CONTENT_LENGTH"]
        env["wsgi.input_terminated"] = True
        req = Request(env)
        assert req.input_terminated
        assert req.read_body() == b"chunked data"
