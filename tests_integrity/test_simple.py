"""Base integrity test"""
from os import environ
from os.path import dirname, join, pardir

from pytest import fixture

from .support import check_url, start_server

# pylint: disable=inconsistent-return-statements
# pylint: disable=missing-function-docstring
# pylint: disable=no-self-use
# pylint: disable=redefined-outer-name


@fixture(scope="module")
def upload_dir(tmp_path_factory):
    return tmp_path_factory.mktemp("upload")


@fixture(scope="module")
def url(request, upload_dir):
    """URL (server fixture in fact)."""
    url = environ.get("TEST_SIMPLE_URL", "").strip('/')
    if url:
        return url

    env = dict(environ, UPLOAD_DIR=str(upload_dir))
    process = start_server(
        request,
        join(dirname(__file__), pardir, 'examples/simple.py'),
        env)

    yield "http://localhost:8080"  # server is running
    process.kill()
    process.wait()


class TestSimple():
    """Test for example handlers."""

    def test_not_found(self, url):
        res = check_url(url+"/no-page", status_code=404)
        assert res.text == "404 page not found\n"
        assert res.headers["X-Content-Type-Options"] == "nosniff"

    def test_search(self, url):
        res = check_url(url+"/search", params={"q": "poor", "p": "3"})
        assert res.headers["Content-Type"] == \
            "application/json;charset=utf-8"
        assert res.json() == {"text": "poor", "page": 3, "exact": False}

    def test_search_bad_page(self, url):
        res = check_url(url+"/search", params={"p": "70000"},
                        status_code=500)
        assert "Internal Server Error" in res.text

    def test_user_form(self, url):
        res = check_url(url+"/user/form", method="POST", status_code=201,
                        data={"name": "Alice", "age": "30", "admin": "1"})
        assert res.headers["Content-Type"] == \
            "application/json;charset=utf-8"
        assert res.json() == {"name": "Alice", "age": 30, "admin": False,
                              "tags": []}

    def test_user_json(self, url):
        res = check_url(url+"/user/json", method="POST",
                        json={"name": "Bob", "age": 7, "tags": ["a", "b"]})
        assert res.headers["Content-Type"] == "text/xml;charset=utf-8"
        assert res.text == ('<user age="7"><name>Bob</name>'
                            '<admin>false</admin>'
                            '<tag>a</tag><tag>b</tag></user>')

    def test_upload(self, url, upload_dir):
        res = check_url(url+"/upload", method="POST",
                        files={"file": ("test.txt", b"Hello upload")})
        assert res.text == "uploaded test.txt"
        if not environ.get("TEST_SIMPLE_URL"):
            assert (upload_dir / "test.txt").read_bytes() == b"Hello upload"

    def test_upload_missing(self, url):
        check_url(url+"/upload", method="POST", status_code=400,
                  files={"other": ("test.txt", b"data")})

    def test_upload_not_multipart(self, url):
        check_url(url+"/upload", method="POST", status_code=500,
                  data={"file": "text"})

    def test_echo(self, url):
        res = check_url(url+"/echo", method="POST", data="<b>Hi</b>")
        assert res.headers["Content-Type"] == "text/html;charset=utf-8"
        assert res.text == "&lt;b&gt;Hi&lt;/b&gt;"
