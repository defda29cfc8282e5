"""Parsing of request body forms and uploaded files.

Form parser reads ``application/x-www-form-urlencoded`` and
``multipart/form-data`` bodies. Values are stored in Values object, files
in UploadFile objects, which hold data in memory up to max_memory limit and
in temporary files over it.

:Exceptions: NotMultipart, FormTooLarge
:Classes:   UploadFile, FormData, FormParser, LimitedInput
:Functions: valid_boundary
"""
import re
import tempfile
from email.parser import FeedParser
from io import BytesIO, TextIOWrapper
from logging import getLogger
from typing import BinaryIO, NamedTuple, Optional

from poorcontext.headers import Headers, parse_header
from poorcontext.state import (DEFAULT_MAX_MEMORY, FORM_MULTIPART,
                               FORM_URLENCODED)
from poorcontext.values import Values, parse_query

log = getLogger("poorcontext")

_RE_BOUNDARY = re.compile(b"^[ -~]{0,200}[!-~]$")

# extra memory for non file values of multipart form
MAX_VALUE_MEMORY = 10 << 20


class NotMultipart(ValueError):
    """Request body is not multipart/form-data."""


class FormTooLarge(ValueError):
    """Multipart values are bigger than memory limit."""


def valid_boundary(data: bytes):
    """Check valid boundary label.

    >>> valid_boundary(b"----WebKitFormBoundaryMPRpF8CUUmlmqKqy")
    True
    >>> valid_boundary(b"bad boundary ")
    False
    """
    return bool(_RE_BOUNDARY.match(data))


class LimitedInput:
    """Wrapper around wsgi.input, which never reads over Content-Length."""

    def __init__(self, file: BinaryIO, size: int):
        self.__file = file
        self.__todo = size

    def read(self, size: int = -1):
        """Read at most size bytes, rest of content if size is negative."""
        if size < 0 or size > self.__todo:
            size = self.__todo
        if size <= 0:
            return b''
        data = self.__file.read(size)
        self.__todo -= len(data)
        return data

    def readline(self, size: int = -1):
        """Read one line, but at most size bytes."""
        if size < 0 or size > self.__todo:
            size = self.__todo
        if size <= 0:
            return b''
        line = self.__file.readline(size)
        self.__todo -= len(line)
        return line


class UploadFile:
    """File from multipart form.

    :name:          form field name
    :filename:      original filename from client
    :content_type:  mime type sent by client
    :headers:       all part headers
    :size:          size of data in bytes
    :file:          SpooledTemporaryFile, or BytesIO, with data from begin

    UploadFile could be used as context manager, file is closed on exit.
    """

    def __init__(self, name: str, filename: str, headers: Headers,
                 file: BinaryIO, size: int = 0):
        self.name = name
        self.filename = filename
        self.headers = headers
        self.content_type = headers.get("Content-Type",
                                        "application/octet-stream")
        self.file = file
        self.size = size

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def __repr__(self):
        return f"UploadFile({self.name!r}, {self.filename!r}, {self.size})"

    def read(self, size: int = -1):
        """Read data from file."""
        return self.file.read(size)

    def close(self):
        """Close internal file."""
        self.file.close()

    @property
    def closed(self):
        """True if internal file is closed."""
        return self.file.closed


class FormData(NamedTuple):
    """Result of FormParser."""
    values: Values
    files: dict


class FormParser:
    """Parser of request body forms.

    .. code:: python

        parser = FormParser(request.input, request.headers)
        data = parser.parse()
        assert isinstance(data.values, Values)

    File parts are kept in memory while summary size of files is lower than
    max_memory, other files are stored in temporary files. Non file values
    can use max_memory plus MAX_VALUE_MEMORY, else FormTooLarge is raised.
    """
    BUFSIZE = 8*1024

    def __init__(self, input_, headers, max_memory: int = DEFAULT_MAX_MEMORY,
                 keep_blank_values: bool = True,
                 strict_parsing: bool = False,
                 encoding: str = 'utf-8', errors: str = 'replace',
                 max_num_fields: Optional[int] = None):
        # self.input.read() must return bytes
        if isinstance(input_, TextIOWrapper):
            input_ = input_.buffer
        self.headers = headers
        self.max_memory = max_memory
        self.keep_blank_values = keep_blank_values
        self.strict_parsing = strict_parsing
        self.encoding = encoding
        self.errors = errors
        self.max_num_fields = max_num_fields

        ctype, self.pdict = parse_header(headers.get('Content-Type', ''))
        self.mime_type = ctype
        try:
            self.length = int(headers.get('Content-Length') or -1)
        except ValueError:
            self.length = -1
        if self.length >= 0:
            input_ = LimitedInput(input_, self.length)
        self.input = input_

    def parse(self) -> FormData:
        """Parse body by its mime type, other types return empty data."""
        if self.mime_type == FORM_URLENCODED:
            return FormData(self.parse_urlencoded(), {})
        if self.mime_type == FORM_MULTIPART:
            return self.parse_multipart()
        log.debug("Not form mime type `%s'", self.mime_type)
        return FormData(Values(), {})

    def parse_urlencoded(self) -> Values:
        """Read body in query string format."""
        data = self.input.read()
        if not isinstance(data, bytes):
            raise ValueError(f"{self.input} should return bytes, "
                             f"got {type(data).__name__}")
        qs = data.decode(self.encoding, self.errors)
        values = parse_query(qs, self.keep_blank_values, self.strict_parsing,
                             self.encoding, self.errors)
        if self.max_num_fields is not None and \
                sum(map(len, values.values())) > self.max_num_fields:
            raise ValueError('Max number of fields exceeded')
        return values

    def parse_multipart(self) -> FormData:
        """Read multipart/form-data body."""
        if self.mime_type != FORM_MULTIPART:
            raise NotMultipart(
                f"Content-Type `{self.mime_type}' isn't {FORM_MULTIPART}")
        boundary = self.pdict.get('boundary', '').encode(self.encoding,
                                                          self.errors)
        if not valid_boundary(boundary):
            raise ValueError(
                f"Invalid boundary in multipart form: {boundary!r}")

        values = Values()
        files: dict[str, list[UploadFile]] = {}
        file_memory = self.max_memory
        value_memory = self.max_memory + MAX_VALUE_MEMORY
        fields = 0

        if not self._skip_to_boundary(boundary):
            return FormData(values, files)

        done = False
        while not done:
            headers = self._read_headers()
            _, pdict = parse_header(headers.get('Content-Disposition', ''))
            name = pdict.get('name')
            filename = pdict.get('filename')

            fields += 1
            if self.max_num_fields is not None \
                    and fields > self.max_num_fields:
                raise ValueError('Max number of fields exceeded')

            if name is None:
                done, _ = self._read_part(boundary, None, -1)
                continue

            if not filename:    # no file was selected in browser form
                buffer = BytesIO()
                done, size = self._read_part(boundary, buffer, value_memory)
                value_memory -= size
                values.add(name, buffer.getvalue().decode(self.encoding,
                                                          self.errors))
                continue

            if file_memory > 0:
                file = tempfile.SpooledTemporaryFile(max_size=file_memory)
            else:
                file = tempfile.TemporaryFile()
            try:
                done, size = self._read_part(boundary, file, -1)
            except BaseException:
                file.close()
                raise
            if size <= file_memory:
                file_memory -= size
            file.seek(0)
            files.setdefault(name, []).append(
                UploadFile(name, filename, headers, file, size))
            log.debug("Upload file %s: %s (%d bytes)", name, filename, size)

        return FormData(values, files)

    def _skip_to_boundary(self, boundary: bytes):
        """Skip preamble, return False if there is no part."""
        first = b"--" + boundary
        while True:
            line = self.input.readline(1 << 16)
            if not line:
                return False
            stripped = line.strip()
            if stripped == first:
                return True
            if stripped == first + b"--":
                return False

    def _read_headers(self):
        parser = FeedParser()
        while True:
            line = self.input.readline(1 << 16)
            if not line:
                raise ValueError("Unexpected end of multipart headers")
            if not line.strip():
                break
            parser.feed(line.decode(self.encoding, self.errors))
        return Headers(parser.close().items(), strict=False)

    def _read_part(self, boundary: bytes, file: Optional[BinaryIO],
                   limit: int):
        """Copy part data to file until next boundary.

        Line ending before boundary belongs to boundary. Returns tuple
        (last boundary found, size of data).
        """
        next_boundary = b"--" + boundary
        last_boundary = next_boundary + b"--"
        delim = b""
        line_start = True
        size = 0
        while True:
            line = self.input.readline(1 << 16)
            if not line:
                raise ValueError("Unexpected end of multipart data")
            if delim == b"\r":
                # \r\n was split by readline size
                line = delim + line
                delim = b""
            if line_start and line.startswith(b"--"):
                stripped = line.rstrip()
                if stripped == next_boundary:
                    return False, size
                if stripped == last_boundary:
                    return True, size
            pending = delim
            if line.endswith(b"\r\n"):
                delim, line = b"\r\n", line[:-2]
                line_start = True
            elif line.endswith(b"\n"):
                delim, line = b"\n", line[:-1]
                line_start = True
            elif line.endswith(b"\r"):
                delim, line = b"\r", line[:-1]
                line_start = False
            else:
                delim = b""
                line_start = False
            chunk = pending + line
            size += len(chunk)
            if 0 <= limit < size:
                raise FormTooLarge("Multipart values are too large")
            if file is not None:
                file.write(chunk)
