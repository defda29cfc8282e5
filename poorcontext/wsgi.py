"""Application callable class, which is the main point for wsgi application.

:Classes:   Application
"""
# pylint: disable=consider-using-f-string

from html import escape
from logging import getLogger
from os import environ
from sys import exc_info
from traceback import format_exception
from typing import Callable, ClassVar, Union

from poorcontext.binding import Binder
from poorcontext.context import Context
from poorcontext.request import Request
from poorcontext.response import HTTPException, ResponseWriter
from poorcontext.state import (DEFAULT_MAX_MEMORY, FORM_TAG,
                               HTTP_INTERNAL_SERVER_ERROR, QUERY_TAG)

log = getLogger("poorcontext")

Handler = Callable[[Context], None]


class Application():
    """WSGI application, which calls one handler with Context.

    .. code:: python

        def handler(ctx):
            ctx.write_text("Hello " + ctx.form_value("name"))

        application = Application(handler)

    Some configuration could be overwrite by ``poor_`` variables from WSGI
    environ or from os.environ::

        poor_Debug = on                 # debug traceback in 500 response
        poor_MaxMemory = 1048576        # memory for multipart files
    """
    __instances: ClassVar[list[str]] = []

    def __init__(self, handler: Handler, name: str = "__main__"):
        """Application class is per name singleton.

        That means, there could be exist only one instance with same name.
        """
        if Application.__instances.count(name):
            raise RuntimeError('Application with name %s exist yet.' % name)
        Application.__instances.append(name)

        self.__name = name
        self.__handler = handler
        self.__config = {
            'max_memory': DEFAULT_MAX_MEMORY,
            'keep_blank_values': True,
            'debug': 'Off',
            'form_tag': FORM_TAG,
            'query_tag': QUERY_TAG,
        }

    @property
    def name(self):
        """Application name."""
        return self.__name

    @property
    def handler(self):
        """Handler function, which gets Context."""
        return self.__handler

    @property
    def max_memory(self):
        """Memory size for multipart files, 64 MiB by default.

        This setting will be rewrite by poor_MaxMemory environ variable.
        """
        return self.__config['max_memory']

    @max_memory.setter
    def max_memory(self, value: int):
        self.__config['max_memory'] = int(value)

    @property
    def keep_blank_values(self):
        """Keep blank values in parsed query and form, True by default.

        Binding treats blank values as missing in any case.
        """
        return self.__config['keep_blank_values']

    @keep_blank_values.setter
    def keep_blank_values(self, value: Union[int, bool]):
        self.__config['keep_blank_values'] = bool(value)

    @property
    def debug(self):
        """Application debug as another way how to set poor_Debug.

        This setting will be rewrite by poor_Debug environment variable.
        """
        return self.__config['debug'] == 'On'

    @debug.setter
    def debug(self, value: Union[int, bool]):
        self.__config['debug'] = 'On' if bool(value) else 'Off'

    @property
    def form_tag(self):
        """Field metadata key for Context.read_form, ``form`` by default."""
        return self.__config['form_tag']

    @form_tag.setter
    def form_tag(self, value: str):
        self.__config['form_tag'] = value

    @property
    def query_tag(self):
        """Field metadata key for Context.read_query, ``url`` by default."""
        return self.__config['query_tag']

    @query_tag.setter
    def query_tag(self, value: str):
        self.__config['query_tag'] = value

    def poor_environ(self, env: dict):
        """Return environ with ``poor_`` variables.

        uWsgi does not send environ variables to application environ, so
        os.environ is used in that case.
        """
        if 'uwsgi.version' in env or 'poor.Version' in environ:
            return environ
        return env

    def get_debug(self, env: dict) -> bool:
        """Debug value for request."""
        var = self.poor_environ(env).get('poor_Debug')
        if var:
            return var.lower() == 'on'
        return self.debug

    def get_max_memory(self, env: dict) -> int:
        """Max memory value for request."""
        var = self.poor_environ(env).get('poor_MaxMemory')
        if var:
            try:
                return int(var)
            except ValueError:
                log.warning("Bad poor_MaxMemory value `%s'", var)
        return self.max_memory

    def internal_server_error(self, writer: ResponseWriter, debug: bool):
        """Write 500 Internal Server Error response with logged traceback.

        Traceback is in response body when debug is on.
        """
        traceback = ''.join(format_exception(*exc_info()))
        log.error(traceback)
        if writer.written:
            log.error("Response was written yet, error could not be sent.")
            return
        writer.headers.set("Content-Type", "text/html; charset=utf-8")
        writer.write_header(HTTP_INTERNAL_SERVER_ERROR)
        writer.write(
            "<!DOCTYPE html>\n"
            "<html>\n"
            " <head>\n"
            "  <title>500 - Internal Server Error</title>\n"
            " </head>\n"
            " <body>\n"
            "  <h1>500 - Internal Server Error</h1>\n")
        if debug:
            writer.write("  <pre>%s</pre>\n" % escape(traceback))
        writer.write(" </body>\n</html>\n")

    def __call__(self, env: dict, start_response: Callable):
        """Create Request, ResponseWriter and Context and call handler."""
        writer = ResponseWriter()
        try:
            request = Request(env, self.get_max_memory(env),
                              self.keep_blank_values)
        except ConnectionError as err:
            log.warning(str(err))
            return ()

        ctx = Context(request, writer,
                      form_binder=Binder(self.form_tag),
                      query_binder=Binder(self.query_tag))
        try:
            self.__handler(ctx)
        except HTTPException as http_err:
            if writer.written:
                log.warning("Response was written yet, %s is ignored.",
                            http_err)
            else:
                ctx.error(http_err.status_code)
        except Exception:  # pylint: disable=broad-except
            self.internal_server_error(writer, self.get_debug(env))

        return writer(start_response)

    def __repr__(self):
        return '%s - callable Application class instance' % self.__name
