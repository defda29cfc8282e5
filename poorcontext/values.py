"""Multi-valued string mapping for query strings and form bodies.

:Classes:   Values
:Functions: parse_query
"""
from collections.abc import Mapping
from typing import Any, Callable, Iterable, Optional, Tuple, Union
from urllib.parse import parse_qsl, urlencode


class Values(Mapping):
    """Ordered mapping of key to list of string values.

    It is the value source for binding. Keys keep the order in which they
    were first seen, values keep the order in which they were added.

    >>> values = Values([("x", "8"), ("name", "Alice"), ("x", "7")])
    >>> values["x"]
    ['8', '7']
    >>> values.get("x")
    '8'
    >>> values.get("missing")
    ''
    >>> list(values)
    ['x', 'name']
    """

    def __init__(self, pairs: Optional[Union[
            Iterable[Tuple[str, str]], Mapping]] = None):
        self.__data: dict[str, list[str]] = {}
        if isinstance(pairs, Mapping):
            for key, val in pairs.items():
                if isinstance(val, str):
                    self.add(key, val)
                else:
                    for item in val:
                        self.add(key, item)
        else:
            for key, val in pairs or ():
                self.add(key, val)

    def __getitem__(self, key: str) -> list:
        return self.__data[key]

    def __iter__(self):
        return iter(self.__data)

    def __len__(self):
        return len(self.__data)

    def __repr__(self):
        return f"Values({self.__data!r})"

    def get(self, key: str, default: str = ''):  # type: ignore[override]
        """Return first value for key or default (empty string)."""
        vals = self.__data.get(key)
        if vals:
            return vals[0]
        return default

    def getfirst(self, key: str, default: Any = None,
                 func: Callable = lambda x: x):
        """Get first value for key processed with func, or default.

        >>> Values({"age": ["23", "24"]}).getfirst("age", func=int)
        23
        """
        vals = self.__data.get(key)
        if vals:
            return func(vals[0])
        return default

    def getlist(self, key: str, default: Optional[list] = None,
                func: Callable = lambda x: x):
        """Returns list of values for key processed with func.

        >>> Values({"x": ["1", "2"]}).getlist("x", func=int)
        [1, 2]
        >>> Values().getlist("x")
        []
        """
        if key in self.__data:
            return [func(x) for x in self.__data[key]]
        return default or []

    def add(self, key: str, value: str):
        """Append value to key."""
        self.__data.setdefault(key, []).append(value)

    def set(self, key: str, value: str):
        """Replace all values of key by one value."""
        self.__data[key] = [value]

    def delete(self, key: str):
        """Delete key, missing key is not an error."""
        self.__data.pop(key, None)

    def extend(self, other: Mapping):
        """Append all values from other mapping."""
        for key, vals in other.items():
            if isinstance(vals, str):
                vals = [vals]
            for val in vals:
                self.add(key, val)

    def copy(self):
        """Return new Values with the same content."""
        return Values(self)

    def encode(self):
        """Return urlencoded string in order of keys.

        >>> Values([("q", "a b"), ("n", "1"), ("q", "&")]).encode()
        'q=a+b&q=%26&n=1'
        """
        return urlencode([(key, val) for key, vals in self.__data.items()
                          for val in vals])


def parse_query(query: str, keep_blank_values: bool = True,
                strict_parsing: bool = False,
                encoding: str = 'utf-8', errors: str = 'replace') -> Values:
    """Parse query string or urlencoded body to Values.

    Blank values are kept by default, binding treats them as missing.

    >>> parse_query("n=Alice&a=30&a=31&e=")
    Values({'n': ['Alice'], 'a': ['30', '31'], 'e': ['']})
    """
    if not query:
        return Values()
    return Values(parse_qsl(query, keep_blank_values, strict_parsing,
                            encoding=encoding, errors=errors))
