"""Context, request and response helper for one WSGI request.

:Exceptions: CreateFileFailed, MissingFile, EmptyBody, NotMultipart
:Classes:   Context
"""
from contextlib import closing
from html import escape, unescape
from logging import getLogger
from mimetypes import guess_type
from os import R_OK, access, listdir, path, stat
from shutil import copyfileobj
from typing import Any, BinaryIO, Callable, Optional, Union
from urllib.parse import quote

from poorcontext.binding import Binder
from poorcontext.codec import (dumps_json, dumps_xml, html_escape_json,
                               loads_json, loads_xml)
from poorcontext.fieldstorage import NotMultipart, UploadFile
from poorcontext.headers import Headers, HeadersList, http_to_time, \
    time_to_http
from poorcontext.request import EmptyBody, Request
from poorcontext.response import ResponseWriter, status_text
from poorcontext.state import (
    CONTENT_TYPE_HTML,
    CONTENT_TYPE_JSON,
    CONTENT_TYPE_TEXT,
    CONTENT_TYPE_XML,
    FORM_TAG,
    HTTP_BAD_REQUEST,
    HTTP_FORBIDDEN,
    HTTP_NOT_FOUND,
    HTTP_NOT_MODIFIED,
    HTTP_OK,
    METHOD_HEAD,
    QUERY_TAG,
)

log = getLogger("poorcontext")

__all__ = ["Context", "CreateFileFailed", "MissingFile", "EmptyBody",
           "NotMultipart"]

Unmarshaler = Callable[[bytes, Any], Any]


class CreateFileFailed(OSError):
    """Output file for upload could not be created."""


class MissingFile(KeyError):
    """There is no file with requested key in multipart form."""


class Context:
    """Helper object around Request and ResponseWriter.

    Binders are created for each context, when no one is set. Form binder
    reads ``form`` tags, query binder reads ``url`` tags.

    .. code:: python

        def handler(ctx):
            user = User()
            ctx.read_form(user)
            ctx.write_json(user)
    """
    # pylint: disable=too-many-public-methods

    def __init__(self, request: Request, writer: ResponseWriter,
                 max_memory: Optional[int] = None,
                 form_binder: Optional[Binder] = None,
                 query_binder: Optional[Binder] = None):
        self.__request = request
        self.__writer = writer
        if max_memory is not None:
            request.max_memory = max_memory
        self.form_binder = form_binder or Binder(FORM_TAG)
        self.query_binder = query_binder or Binder(QUERY_TAG)

    @property
    def request(self) -> Request:
        """Reference to request object."""
        return self.__request

    @property
    def writer(self) -> ResponseWriter:
        """Reference to response writer."""
        return self.__writer

    @property
    def max_memory(self) -> int:
        """Memory size for multipart files, 64 MiB by default."""
        return self.__request.max_memory

    @max_memory.setter
    def max_memory(self, value: int):
        self.__request.max_memory = value

    # -------------------------- Errors --------------------------- #
    def http_error(self, message: str, status_code: int):
        """Reply with plain text message and status code."""
        headers = self.__writer.headers
        headers.delete("Content-Length")
        headers.set("Content-Type", "text/plain; charset=utf-8")
        headers.set("X-Content-Type-Options", "nosniff")
        self.__writer.write_header(status_code)
        self.__writer.write(message + "\n")

    def not_found(self):
        """Reply with 404 page not found."""
        self.http_error("404 page not found", HTTP_NOT_FOUND)

    def error(self, status_code: int):
        """Reply with status code and its text, e.g. state.HTTP_FORBIDDEN."""
        self.http_error(f"{status_code} {status_text(status_code)}",
                        status_code)

    # -------------------------- Files --------------------------- #
    def serve_file(self, name: str):
        """Reply with the content of file or directory.

        Missing file is 404, file which is not readable is 403. Directory
        with index.html serves index, other directory is listed.
        """
        if '..' in self.__request.path.split('/'):
            self.http_error("invalid URL path", HTTP_BAD_REQUEST)
            return
        if not path.exists(name):
            self.not_found()
            return
        if path.isdir(name):
            index = path.join(name, "index.html")
            if not path.isfile(index):
                self.__serve_directory(name)
                return
            name = index
        if not access(name, R_OK):
            self.error(HTTP_FORBIDDEN)
            return

        info = stat(name)
        since = http_to_time(self.get_header("If-Modified-Since"))
        if since is not None and int(info.st_mtime) <= since:
            headers = self.__writer.headers
            headers.delete("Content-Type")
            headers.delete("Content-Length")
            self.__writer.write_header(HTTP_NOT_MODIFIED)
            return

        headers = self.__writer.headers
        if "Content-Type" not in headers:
            headers.set("Content-Type",
                        guess_type(name)[0] or "application/octet-stream")
        headers.set("Last-Modified", time_to_http(info.st_mtime))
        headers.set("Content-Length", str(info.st_size))
        self.__writer.write_header(HTTP_OK)
        log.info("Return file: %s", name)
        if self.__request.method_number == METHOD_HEAD:
            return
        with open(name, "rb") as file:
            for block in iter(lambda: file.read(1 << 16), b''):
                self.__writer.write(block)

    def __serve_directory(self, name: str):
        if not access(name, R_OK):
            self.error(HTTP_FORBIDDEN)
            return
        log.info("Return directory: %s", name)
        self.set_header("Content-Type", CONTENT_TYPE_HTML)
        self.__writer.write_header(HTTP_OK)
        self.__writer.write('<!doctype html>\n'
                            '<meta name="viewport" '
                            'content="width=device-width">\n<pre>\n')
        for item in sorted(listdir(name)):
            if path.isdir(path.join(name, item)):
                item += '/'
            self.__writer.write(
                f'<a href="{quote(item)}">{escape(item)}</a>\n')
        self.__writer.write('</pre>\n')

    # -------------------------- Values --------------------------- #
    def form_value(self, name: str) -> str:
        """Return first value from form or query, empty string if missing.

        Body which could not be parsed is logged and only query string is
        used.
        """
        try:
            return self.form().get(name)
        except ValueError as err:
            log.warning("Form body could not be parsed: %s", err)
            return self.query().get(name)

    def query(self):
        """Values from url query string."""
        return self.__request.args

    def form(self):
        """Values from body followed by values from url query string."""
        return self.__request.form

    def post_form(self):
        """Values from body only."""
        return self.__request.post_form

    def read_form(self, target: Any):
        """Bind form values to dataclass target by ``form`` tags.

        Nothing is done when there are no values.
        """
        values = self.form()
        if not values:
            return
        self.form_binder.bind(target, values)

    def read_query(self, target: Any):
        """Bind url query values to dataclass target by ``url`` tags.

        Nothing is done when there are no values.
        """
        values = self.query()
        if not values:
            return
        self.query_binder.bind(target, values)

    # -------------------------- Headers --------------------------- #
    def add_header(self, name: str, value: str):
        """Add response header, others with the same name stay."""
        self.__writer.headers.add(name, value)

    def set_header(self, name: str, value: str):
        """Set response header, replace others with the same name."""
        self.__writer.headers.set(name, value)

    def del_header(self, name: str):
        """Delete response header."""
        self.__writer.headers.delete(name)

    def get_header(self, name: str) -> str:
        """Return request header value or empty string."""
        return self.__request.get_header(name)

    # -------------------------- Writing --------------------------- #
    def write_header(self, status_code: int,
                     headers: Optional[Union[Headers, HeadersList]] = None):
        """Write status code and headers, headers overlay could be None."""
        self.__writer.write_header(status_code, headers)

    def write(self, data: bytes) -> int:
        """Write raw data to response."""
        return self.__writer.write(data)

    def write_string(self, text: str):
        """Write HTML escaped text."""
        self.__writer.write(escape(text))

    def write_data_json(self, data: bytes):
        """Write serialized JSON with escaped HTML characters."""
        self.set_header("Content-Type", CONTENT_TYPE_JSON)
        self.__writer.write(html_escape_json(data))

    def write_json(self, value: Any):
        """Serialize value to JSON and write it."""
        self.write_data_json(dumps_json(value))

    def write_data_xml(self, data: bytes):
        """Write serialized XML."""
        self.set_header("Content-Type", CONTENT_TYPE_XML)
        self.__writer.write(data)

    def write_xml(self, value: Any):
        """Serialize dataclass instance to XML and write it."""
        self.write_data_xml(dumps_xml(value))

    def write_html(self, text: str):
        """Write text as escaped HTML."""
        self.set_header("Content-Type", CONTENT_TYPE_HTML)
        self.write_string(text)

    def write_text(self, text: str):
        """Write plain text."""
        self.set_header("Content-Type", CONTENT_TYPE_TEXT)
        self.__writer.write(text)

    # -------------------------- Reading --------------------------- #
    def get_body(self) -> bytes:
        """Return request body, raise EmptyBody if there is no body."""
        return self.__request.read_body()

    def unmarshal_body(self, target: Any, unmarshaler: Unmarshaler):
        """Decode request body with unmarshaler(data, target)."""
        return unmarshaler(self.get_body(), target)

    def read_json(self, target: Any = None):
        """Decode JSON body to target, or return decoded value."""
        return self.unmarshal_body(target, loads_json)

    def read_xml(self, target: Any):
        """Decode XML body to dataclass target."""
        return self.unmarshal_body(target, loads_xml)

    def read_html(self) -> str:
        """Return body text with unescaped HTML entities."""
        return unescape(self.read_text())

    def read_text(self) -> str:
        """Return body as text decoded by request charset."""
        return self.get_body().decode(self.__request.charset, 'replace')

    # -------------------------- Uploads --------------------------- #
    def form_file(self, key: str) -> UploadFile:
        """Return first file uploaded with key from multipart form."""
        files = self.__request.parse_multipart().get(key)
        if not files:
            raise MissingFile(key)
        return files[0]

    def upload_file(self, key: str,
                    create_file: Callable[[str], Optional[BinaryIO]]):
        """Copy uploaded file to output created by create_file(filename).

        Both upload and output files are closed. CreateFileFailed is raised
        when create_file returns None or raises OSError.
        """
        upload = self.form_file(key)
        with upload:
            try:
                out = create_file(upload.filename)
            except OSError as err:
                raise CreateFileFailed(
                    f"Create file failed: {upload.filename}") from err
            if out is None:
                raise CreateFileFailed(
                    f"Create file failed: {upload.filename}")
            with closing(out):
                copyfileobj(upload.file, out)
        log.debug("Upload %s saved (%d bytes)", upload.filename, upload.size)
