"""Request class, which wraps WSGI environ.

:Exceptions: EmptyBody
:Classes:   Request
"""
from codecs import lookup
from io import BytesIO
from logging import getLogger
from typing import Optional

from poorcontext.fieldstorage import FormData, FormParser, NotMultipart
from poorcontext.headers import Headers, parse_header
from poorcontext.state import (BODY_METHODS, DEFAULT_MAX_MEMORY,
                               FORM_MULTIPART, FORM_URLENCODED, methods)
from poorcontext.values import Values, parse_query

log = getLogger("poorcontext")


class EmptyBody(ValueError):
    """Request has no body stream."""


class Request:
    """HTTP request object created from WSGI environ.

    Query arguments and form body are parsed lazily on first access and
    cached for the rest of request.

    >>> req = Request({'PATH_INFO': '/', 'QUERY_STRING': 'n=Alice&a=30'})
    >>> req.args.get('n')
    'Alice'
    """

    def __init__(self, environ: dict, max_memory: int = DEFAULT_MAX_MEMORY,
                 keep_blank_values: bool = True):
        if environ.get('PATH_INFO') is None:
            raise ConnectionError(
                "PATH_INFO not set, probably bad HTTP protocol used.")
        self.__environ = environ
        self.__max_memory = max_memory
        self.__keep_blank_values = keep_blank_values

        # A table object containing headers sent by the client.
        tmp = []
        for key, val in environ.items():
            if key[:5] == 'HTTP_':
                key = '-'.join(x.capitalize() for x in key[5:].split('_'))
                tmp.append((key, val))
            elif key in ("CONTENT_LENGTH", "CONTENT_TYPE"):
                key = '-'.join(x.capitalize() for x in key.split('_'))
                tmp.append((key, val))
        self.__headers = Headers(tmp, False)  # do not convert to iso-8859-1

        ctype, pdict = parse_header(self.__headers.get('Content-Type', ''))
        self.__mime_type = ctype
        self.__charset = pdict.get('charset', 'utf-8')
        try:
            lookup(self.__charset)
        except LookupError:
            log.warning("Unknown charset %s, utf-8 is used", self.__charset)
            self.__charset = 'utf-8'
        try:
            self.__content_length = int(
                self.__headers.get("Content-Length") or -1)
        except ValueError:
            self.__content_length = -1

        self.__file = environ.get("wsgi.input")
        self.__body: Optional[bytes] = None

        # will be set with first property call
        self.__args: Optional[Values] = None
        self.__form: Optional[Values] = None
        self.__form_data: Optional[FormData] = None

    # -------------------------- Properties --------------------------- #
    @property
    def environ(self):
        """Copy of WSGI environ."""
        return self.__environ.copy()

    @property
    def method(self):
        """String containing the method, ``GET, HEAD, POST``, etc."""
        return self.__environ.get('REQUEST_METHOD', 'GET')

    @property
    def method_number(self):
        """Method number constant from state module."""
        return methods.get(self.method, methods['GET'])

    @property
    def path(self):
        """Path part of url."""
        return self.__environ['PATH_INFO'].encode('iso-8859-1').decode()

    @property
    def query(self):
        """The QUERY_STRING environment variable."""
        return self.__environ.get('QUERY_STRING', '').strip()

    @property
    def full_path(self):
        """Path with query, if it exist, from url."""
        query = self.query
        return self.path + ('?'+query if query else '')

    @property
    def remote_addr(self):
        """Remote address."""
        return self.__environ.get('REMOTE_ADDR')

    @property
    def server_protocol(self):
        """Server protocol, as given by the client."""
        return self.__environ.get('SERVER_PROTOCOL')

    @property
    def scheme(self):
        """Request scheme, typical ``http`` or ``https``."""
        return self.__environ.get('wsgi.url_scheme')

    @property
    def headers(self) -> Headers:
        """Reference to input headers object."""
        return self.__headers

    @property
    def mime_type(self) -> str:
        """Request ``Content-Type`` header or empty string if not set."""
        return self.__mime_type

    @property
    def charset(self) -> str:
        """Request ``Content-Type`` charset header string, utf-8 if not set."""
        return self.__charset

    @property
    def content_length(self) -> int:
        """Request ``Content-Length`` header value, -1 if not set."""
        return self.__content_length

    @property
    def is_body_request(self) -> bool:
        """True if has set Content-Length more than zero."""
        return self.__content_length > 0

    @property
    def input(self):
        """WSGI input stream, None if it is not set."""
        return self.__file

    @property
    def input_terminated(self) -> bool:
        """True if server marks end of input stream (chunked requests)."""
        return bool(self.__environ.get('wsgi.input_terminated'))

    @property
    def max_memory(self) -> int:
        """Memory limit for multipart files.

        It could be changed only before form body is parsed.
        """
        return self.__max_memory

    @max_memory.setter
    def max_memory(self, value: int):
        if self.__form_data is not None:
            log.warning("Form body is parsed yet, max_memory %d is not used",
                        value)
        self.__max_memory = value

    @property
    def args(self) -> Values:
        """Values parsed from QUERY_STRING."""
        if self.__args is None:
            self.__args = parse_query(self.query, self.__keep_blank_values)
        return self.__args

    @property
    def form_data(self) -> FormData:
        """Values and files parsed from request body.

        Body is parsed only for POST, PUT and PATCH methods with
        urlencoded or multipart mime type.
        """
        if self.__form_data is None:
            self.__form_data = self.__parse_form()
        return self.__form_data

    @property
    def post_form(self) -> Values:
        """Values from request body only."""
        return self.form_data.values

    @property
    def files(self) -> dict:
        """Dictionary of lists of UploadFile from multipart body."""
        return self.form_data.files

    @property
    def form(self) -> Values:
        """Values from request body followed by values from query string."""
        if self.__form is None:
            form = self.post_form.copy()
            form.extend(self.args)
            self.__form = form
        return self.__form

    # -------------------------- Methods --------------------------- #
    def __has_body(self):
        return self.__file is not None and (
            self.__content_length >= 0 or self.input_terminated)

    def __parse_form(self) -> FormData:
        if not self.method_number & BODY_METHODS \
                or self.__mime_type not in (FORM_URLENCODED, FORM_MULTIPART) \
                or not self.__has_body():
            return FormData(Values(), {})
        if self.__body is not None:
            input_ = BytesIO(self.__body)
        else:
            input_ = self.__file
            self.__body = b''   # stream is consumed by parser
        parser = FormParser(input_, self.__headers,
                            max_memory=self.__max_memory,
                            keep_blank_values=self.__keep_blank_values,
                            encoding=self.__charset)
        form_data = parser.parse()
        log.debug("Form parsed: %d values, %d files",
                  len(form_data.values), len(form_data.files))
        return form_data

    def parse_multipart(self, max_memory: Optional[int] = None) -> dict:
        """Parse multipart body and return dictionary of uploaded files.

        Body is parsed only once, max_memory is used only when it was not
        parsed yet.
        """
        if self.__mime_type != FORM_MULTIPART:
            raise NotMultipart(
                f"Content-Type `{self.__mime_type}' isn't {FORM_MULTIPART}")
        if max_memory is not None and self.__form_data is None:
            self.__max_memory = max_memory
        return self.files

    def read_body(self) -> bytes:
        """Read all data from request body.

        Data are cached, so next calls return the same bytes. When body was
        parsed as form yet, empty bytes are returned.
        """
        if self.__body is None:
            if self.__file is None:
                raise EmptyBody("Empty body")
            if self.__content_length >= 0:
                self.__body = self.__file.read(self.__content_length)
            elif self.input_terminated:
                self.__body = self.__file.read()
            else:
                log.debug("No Content-Length found, body is empty.")
                self.__body = b''
        return self.__body

    def get_header(self, name: str) -> str:
        """Return first value of request header or empty string."""
        return self.__headers.get(name, '')
