"""Constants like http status code, method types and content types.

:Variables: __version__, methods, HTTP_*, CONTENT_TYPE_*
"""
__version__ = "1.0.0"
__date__ = "17 October 2026"

METHOD_POST = 1
METHOD_GET = 2
METHOD_HEAD = 4
METHOD_PUT = 8
METHOD_DELETE = 16
METHOD_OPTIONS = 32
METHOD_CONNECT = 64
METHOD_PATCH = 128
METHOD_TRACE = 256

methods = {
    'POST': METHOD_POST,
    'GET': METHOD_GET,
    'HEAD': METHOD_HEAD,
    'PUT': METHOD_PUT,
    'DELETE': METHOD_DELETE,
    'OPTIONS': METHOD_OPTIONS,
    'CONNECT': METHOD_CONNECT,
    'PATCH': METHOD_PATCH,
    'TRACE': METHOD_TRACE,
}

# methods which could carry form data in request body
BODY_METHODS = METHOD_POST | METHOD_PUT | METHOD_PATCH

HTTP_OK = 200
HTTP_CREATED = 201
HTTP_NO_CONTENT = 204
HTTP_NOT_MODIFIED = 304
HTTP_BAD_REQUEST = 400
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_I_AM_A_TEAPOT = 418
HTTP_INTERNAL_SERVER_ERROR = 500

CONTENT_TYPE_JSON = "application/json;charset=utf-8"
CONTENT_TYPE_XML = "text/xml;charset=utf-8"
CONTENT_TYPE_HTML = "text/html;charset=utf-8"
CONTENT_TYPE_TEXT = "text/plain;charset=utf-8"

FORM_URLENCODED = "application/x-www-form-urlencoded"
FORM_MULTIPART = "multipart/form-data"

# 64 MiB buffered in memory for multipart file uploads
DEFAULT_MAX_MEMORY = 0x4000000

# struct field tags used by Context.read_form and Context.read_query
FORM_TAG = "form"
QUERY_TAG = "url"
