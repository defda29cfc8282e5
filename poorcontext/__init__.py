"""
Poor Context, request and response helper for WSGI handlers.

Current Contents:

* binding: binding of query string and form values to dataclasses by tags.
* codec: JSON and XML serialization of dataclasses.
* context: Context class with helper methods for reading request and writing
  response.
* fieldstorage: parsing of urlencoded and multipart request bodies.
* headers: Headers class and header helpers.
* request: Request class, which wraps WSGI environ.
* response: ResponseWriter class, HTTPException and abort.
* state: constants like http status code, content types and defaults.
* values: Values class, multi-valued mapping of query and form values.
* wsgi: Application callable class, which calls one handler with Context.
"""

from poorcontext.binding import Binder, bind, tagged
from poorcontext.context import Context
from poorcontext.response import abort
from poorcontext.wsgi import Application

__all__ = ["Application", "Binder", "Context", "abort", "bind", "tagged"]
