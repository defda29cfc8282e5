"""This is example and test application for PoorContext.

This sample testing example is free to use, modify and study under same BSD
licence as PoorContext. So enjoy it ;)
"""
from dataclasses import dataclass, field
from tempfile import gettempdir
from wsgiref.simple_server import make_server

import os
import sys
import logging as log

EXAMPLES_PATH = os.path.dirname(__file__)
sys.path.insert(0, os.path.abspath(
    os.path.join(EXAMPLES_PATH, os.path.pardir)))

# pylint: disable=import-error, wrong-import-position
from poorcontext import Application, abort, tagged  # noqa
from poorcontext.binding import Uint16  # noqa
from poorcontext.context import Context, MissingFile  # noqa
from poorcontext.state import (CONTENT_TYPE_JSON, HTTP_BAD_REQUEST,  # noqa
                               HTTP_CREATED)

logger = log.getLogger()
logger.setLevel("DEBUG")

UPLOAD_DIR = os.environ.get("UPLOAD_DIR", gettempdir())


@dataclass
class Search:
    """Search arguments from query string."""
    text: str = tagged("", url="q")
    page: Uint16 = tagged(1, url="p")
    exact: bool = tagged(False, url="exact")


@dataclass
class User:
    """User from form or JSON."""
    __xml_name__ = "user"

    name: str = tagged("", form="name", json="name", xml="name")
    age: int = tagged(0, form="age", json="age", xml="age,attr")
    admin: bool = tagged(False, form="-", json="admin", xml="admin")
    tags: list[str] = field(default_factory=list,
                            metadata={"json": "tags", "xml": "tag"})


def search(ctx: Context):
    """Bind query string and return it as JSON."""
    args = Search()
    ctx.read_query(args)
    ctx.write_json(args)


def user_form(ctx: Context):
    """Bind form and return it as JSON."""
    user = User()
    ctx.read_form(user)
    ctx.write_header(HTTP_CREATED, {"Content-Type": CONTENT_TYPE_JSON})
    ctx.write_json(user)


def user_json(ctx: Context):
    """Read JSON user and return it as XML."""
    user = User()
    ctx.read_json(user)
    ctx.write_xml(user)


def upload(ctx: Context):
    """Store uploaded file to UPLOAD_DIR."""
    def create_file(filename):
        return open(os.path.join(UPLOAD_DIR, os.path.basename(filename)),
                    "wb")

    try:
        ctx.upload_file("file", create_file)
    except MissingFile:
        abort(HTTP_BAD_REQUEST)
    ctx.write_text("uploaded " + ctx.form_file("file").filename)


def echo(ctx: Context):
    """Return request body as escaped HTML."""
    ctx.write_html(ctx.read_text())


HANDLERS = {
    "/search": search,
    "/user/form": user_form,
    "/user/json": user_json,
    "/upload": upload,
    "/echo": echo,
}


def handler(ctx: Context):
    """Example handler, which choose function by path."""
    fun = HANDLERS.get(ctx.request.path)
    if fun is None:
        ctx.not_found()
        return
    fun(ctx)


app = application = Application(handler, "simple")
app.debug = True


if __name__ == '__main__':
    ADDRESS = sys.argv[1] if len(sys.argv) > 1 else "127.0.0.1"
    httpd = make_server(ADDRESS, 8080, app)
    print("Starting to serve on http://%s:8080" % ADDRESS)
    httpd.serve_forever()
