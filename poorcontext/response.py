"""Response writer, which collects status, headers and body for WSGI server.

:Exceptions:    HTTPException
:Classes:       ResponseWriter
:Functions:     abort
"""
from http.client import responses
from io import BytesIO
from logging import getLogger
from typing import Callable, Optional, Union

from poorcontext.headers import Headers, HeadersList
from poorcontext.state import (HTTP_I_AM_A_TEAPOT, HTTP_NO_CONTENT,
                               HTTP_NOT_MODIFIED, HTTP_OK)

log = getLogger('poorcontext')
# not in http.client.responses
responses[HTTP_I_AM_A_TEAPOT] = "I'm a teapot"

DEFAULT_CONTENT_TYPE = "text/html; charset=utf-8"


def status_text(status_code: int):
    """Return reason phrase for status code, empty string if unknown.

    >>> status_text(404)
    'Not Found'
    """
    return responses.get(status_code, '')


class HTTPException(Exception):
    """HTTP Exception to fast stop handler work.

    It is answered by Application with Context.error of the status code.

    >>> HTTPException(404).status_code
    404
    """

    def __init__(self, status_code: int, **kwargs):
        super().__init__(status_code, kwargs)

    @property
    def status_code(self) -> int:
        """HTTP status code of exception."""
        return self.args[0]


def abort(status_code: int):
    """Raise HTTPException with status_code.

    >>> abort(404)
    Traceback (most recent call last):
    ...
    poorcontext.response.HTTPException: (404, {})
    """
    raise HTTPException(status_code)


class IBytesIO(BytesIO):
    """Class for returning bytes when is iterate."""

    def read_kilo(self):
        """Read 1024 bytes from buffer."""
        return self.read(1024)

    def __iter__(self):
        """Iterate object by 1024 bytes."""
        return iter(self.read_kilo, b'')


class ResponseWriter:
    """Status, headers and body of one response.

    Headers could be modified until write_header is called, explicitly or
    by first write. Status and headers are written only once, next
    write_header calls are ignored.

    As ResponseWriter uses BytesIO as internal cache, which is closed by WSGI
    server, **response can be used only once!**.

    >>> writer = ResponseWriter()
    >>> writer.headers.set("X-Test", "ok")
    >>> writer.write(b"Hello")
    5
    >>> writer.status_code
    200
    >>> writer.headers.set("X-Test", "late")
    >>> writer.sent_headers["X-Test"]
    'ok'
    """

    def __init__(self, headers: Optional[Union[Headers, HeadersList]] = None):
        if isinstance(headers, Headers):
            self.__headers = headers
        else:
            self.__headers = Headers(headers)
        self.__status_code: Optional[int] = None
        self.__sent_headers: Optional[Headers] = None
        self.__buffer = IBytesIO()
        self.__content_length = 0
        self.__done = False

    @property
    def headers(self) -> Headers:
        """Reference to output headers object."""
        return self.__headers

    @property
    def sent_headers(self) -> Optional[Headers]:
        """Headers frozen by write_header, None before that."""
        return self.__sent_headers

    @property
    def status_code(self) -> Optional[int]:
        """Status code set by write_header, None before that."""
        return self.__status_code

    @property
    def reason(self):
        """HTTP reason phrase of status code."""
        if self.__status_code is None:
            return ''
        return status_text(self.__status_code)

    @property
    def written(self) -> bool:
        """True if status and headers was written."""
        return self.__status_code is not None

    @property
    def content_length(self):
        """Size of data in internal buffer."""
        return self.__content_length

    @property
    def data(self):
        """Return data content."""
        return self.__buffer.getvalue()

    def write_header(self, status_code: int,
                     headers: Optional[Union[Headers, HeadersList]] = None):
        """Set status code and headers overlay, only once per response."""
        if self.__status_code is not None:
            log.warning("Superfluous write_header call with %s, "
                        "status %d is written yet.", status_code,
                        self.__status_code)
            return
        if not 100 <= status_code <= 999:
            raise ValueError(f"Bad response status {status_code}")
        if headers:
            self.__headers.update(headers)
        self.__status_code = status_code
        self.__sent_headers = self.__headers.copy()

    def write(self, data: Union[str, bytes]) -> int:
        """Write data to internal buffer, status 200 is written if not yet."""
        if isinstance(data, str):
            data = data.encode('utf-8')
        if self.__status_code is None:
            self.write_header(HTTP_OK)
        self.__content_length += len(data)
        self.__buffer.write(data)
        return len(data)

    def __call__(self, start_response: Callable):
        """Call start_response and return body iterable for WSGI server."""
        if self.__done:
            raise RuntimeError('Response can be used only once!')
        self.__done = True
        if self.__status_code is None:
            self.write_header(HTTP_OK)
        headers = self.__sent_headers
        if self.__status_code not in (HTTP_NO_CONTENT, HTTP_NOT_MODIFIED) \
                and self.__status_code >= 200:
            if self.__content_length \
                    and 'Content-Type' not in headers:
                headers.add('Content-Type', DEFAULT_CONTENT_TYPE)
            if 'Content-Length' not in headers:
                headers.add('Content-Length', str(self.__content_length))
        start_response(f"{self.__status_code} {self.reason}",
                       list(headers.items()))
        self.__buffer.seek(0)
        return self.__buffer
