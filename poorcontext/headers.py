"""Classes, which is used for managing headers.

:Classes:   Headers
:Functions: parse_header, time_to_http, http_to_time
"""
from collections.abc import Mapping
from datetime import datetime, timezone
from logging import getLogger
from typing import Union, List, Tuple, Optional, Dict

log = getLogger('poorcontext')

# https://httpwg.org/specs/rfc9110.html#field.date
# e.g. Tue, 15 Nov 1994 08:12:31 GMT
HEADER_DATETIME_FORMAT = "%a, %d %b %Y %X GMT"

HeadersList = Union[List, Tuple, set, Dict]


def _parseparam(s):
    while s[:1] == ';':
        s = s[1:]
        end = s.find(';')
        while end > 0 and (s.count('"', 0, end) - s.count('\\"', 0, end)) % 2:
            end = s.find(';', end + 1)
        if end < 0:
            end = len(s)
        yield s[:end].strip()
        s = s[end:]


def parse_header(line: str):
    """Parse a Content-type like header.

    Return the main content-type and a dictionary of options.

    >>> parse_header("text/html; charset=latin-1")
    ('text/html', {'charset': 'latin-1'})
    >>> parse_header('form-data; name="file"; filename="a b.txt"')
    ('form-data', {'name': 'file', 'filename': 'a b.txt'})
    >>> parse_header("text/plain")
    ('text/plain', {})
    """
    parts = _parseparam(';' + line)
    key = next(parts).lower()
    pdict = {}
    for part in parts:
        i = part.find('=')
        if i >= 0:
            name = part[:i].strip().lower()
            value = part[i+1:].strip()
            if len(value) >= 2 and value[0] == value[-1] == '"':
                value = value[1:-1]
                value = value.replace('\\\\', '\\').replace('\\"', '"')
            pdict[name] = value
    return key, pdict


def time_to_http(value: Optional[Union[int, float]] = None):
    """Return HTTP Date from timestamp.

    >>> time_to_http(0)
    'Thu, 01 Jan 1970 00:00:00 GMT'
    """
    if value is None:
        return datetime.now(timezone.utc).strftime(HEADER_DATETIME_FORMAT)
    return datetime.fromtimestamp(
        int(value), timezone.utc).strftime(HEADER_DATETIME_FORMAT)


def http_to_time(value: str):
    """Return timestamp from HTTP Date, None for invalid values.

    >>> http_to_time("Thu, 01 Jan 1970 00:00:00 GMT")
    0
    >>> print(http_to_time("yesterday"))
    None
    """
    try:
        return int(datetime.strptime(value, HEADER_DATETIME_FORMAT)
                   .replace(tzinfo=timezone.utc).timestamp())
    except (TypeError, ValueError):
        log.debug("Invalid HTTP date `%s`", value)
        return None


class Headers(Mapping):
    """Case insensitive table of headers, one name could have more values.

    As PEP 3333 says, headers values must be strings encoded in ISO-8859-1.
    Modification methods convert UTF-8 strings to ISO-8859-1 automatically,
    so on every modification UTF-8 string must be used. Input headers are
    stored untouched (strict=False).

    >>> headers = Headers({'X-Powered-By': 'Test'})
    >>> headers['x-powered-by']
    'Test'
    >>> 'X-POWERED-BY' in headers
    True
    >>> headers.add('X-Powered-By', 'Other')
    >>> headers.get_all('x-powered-by')
    ('Test', 'Other')
    >>> headers.set('X-Powered-By', 'One')
    >>> headers.get_all('X-Powered-By')
    ('One',)
    """

    def __init__(self, headers: Optional[HeadersList] = None,
                 strict: bool = True):
        headers = headers or []
        if isinstance(headers, dict):
            headers = headers.items()
        elif not isinstance(headers, (list, tuple, set)):
            raise TypeError("headers must be tuple, list or set "
                            f"of str pairs, or dict (got {type(headers)})")
        if strict:
            self.__headers = [(Headers.iso88591(k), Headers.iso88591(v))
                              for k, v in headers]
        else:
            self.__headers = [(k, v) for k, v in headers]

    def __len__(self):
        return len(self.__headers)

    def __getitem__(self, name: str):
        """Return first value of header identified by lower name."""
        name = name.lower()
        for key, val in self.__headers:
            if key.lower() == name:
                return val
        raise KeyError(f"{name!r} is not registered")

    def __delitem__(self, name: str):
        self.delete(name)

    def __setitem__(self, name: str, value: str):
        self.set(name, value)

    def __contains__(self, name):
        name = name.lower()
        return any(key.lower() == name for key, _ in self.__headers)

    def __iter__(self):
        return iter(self.names())

    def __repr__(self):
        return f"Headers({tuple(self.__headers)!r})"

    def names(self):
        """Return tuple of unique headers names in order of insertion."""
        return tuple(dict.fromkeys(k for k, _ in self.__headers))

    def keys(self):
        """Alias for names method."""
        return self.names()

    def values(self):
        """Return tuple of all headers values."""
        return tuple(v for _, v in self.__headers)

    def items(self):
        """Return tuple of all headers pairs."""
        return tuple(self.__headers)

    def get(self, name: str, default=None):
        """Return first value of header or default."""
        try:
            return self[name]
        except KeyError:
            return default

    def get_all(self, name: str):
        """Return tuple of all values of header identified by lower name.

        >>> Headers([('Set-Cookie', 'one'), ('Set-Cookie', 'two')]).get_all(
        ...     'set-cookie')
        ('one', 'two')
        >>> Headers().get_all('X-Test')
        ()
        """
        name = name.lower()
        return tuple(v for k, v in self.__headers if k.lower() == name)

    def add(self, name: str, value: str):
        """Append header value, other values with the same name stay."""
        if value is None:
            raise ValueError("Header value must be set.")
        self.__headers.append((Headers.iso88591(name),
                               Headers.iso88591(value)))

    def set(self, name: str, value: str):
        """Replace all values of header by one value."""
        self.delete(name)
        self.add(name, value)

    def delete(self, name: str):
        """Delete all values of header, missing header is not an error."""
        name = name.lower()
        self.__headers = [kv for kv in self.__headers
                          if kv[0].lower() != name]

    def update(self, other: Union['Headers', HeadersList]):
        """Overlay headers from other, its names replace existing ones.

        >>> headers = Headers([('Vary', 'Accept'), ('X-Test', 'Ok')])
        >>> headers.update({'Vary': 'Cookie'})
        >>> headers.items()
        (('X-Test', 'Ok'), ('Vary', 'Cookie'))
        """
        if not isinstance(other, Headers):
            other = Headers(other)
        for name in other.names():
            self.delete(name)
        for name, value in other.items():
            self.__headers.append((name, value))

    def copy(self):
        """Return new Headers object with the same items."""
        return Headers(list(self.__headers), strict=False)

    @staticmethod
    def iso88591(value: str) -> str:
        """Doing automatic conversion to iso-8859-1 strings.

        Converts from utf-8 to iso-8859-1 string. That means, all input value
        of Headers class must be UTF-8 stings.
        """
        if not isinstance(value, str):
            raise TypeError("Header name/value must be of type str "
                            f"(got {value!r})")
        try:
            return value.encode('utf-8').decode('iso-8859-1')
        except UnicodeError as err:
            raise ValueError("Header name/value must be iso-8859-1 "
                             f"encoded (got {value})") from err
