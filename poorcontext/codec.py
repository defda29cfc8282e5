"""JSON and XML serialization of dataclasses and plain values.

Dataclass fields are named by tags in field metadata, ``json`` for JSON and
``xml`` for XML. Field name is used when there is no tag, ``-`` skips field.
XML tag with ``,attr`` suffix stores field as element attribute.

.. code:: python

    @dataclass
    class Item:
        __xml_name__ = "item"
        ident: int = tagged(0, json="id", xml="id,attr")
        title: str = tagged("", json="title", xml="title")

:Functions: dumps_json, loads_json, html_escape_json, dumps_xml, loads_xml
"""
from dataclasses import fields, is_dataclass
from logging import getLogger
from types import NoneType, UnionType
from typing import (Annotated, Any, Optional, Union, get_args, get_origin,
                    get_type_hints)
from xml.etree.ElementTree import Element, SubElement, tostring

from defusedxml.ElementTree import fromstring as xml_fromstring
from simplejson import JSONEncoderForHTML
from simplejson import loads as json_loads

from poorcontext.binding import (SKIP_TAG, BoolKind, FloatKind, IntKind,
                                 StringKind, UintKind, UnsupportedFieldKind,
                                 convert, kind_of)

log = getLogger("poorcontext")

JSON_TAG = "json"
XML_TAG = "xml"

HTML_JSON_ESCAPES = (
    (b"<", b"\\u003c"),
    (b">", b"\\u003e"),
    (b"&", b"\\u0026"),
    ("\u2028".encode("utf-8"), b"\\u2028"),
    ("\u2029".encode("utf-8"), b"\\u2029"),
)


def _is_instance(value: Any):
    return is_dataclass(value) and not isinstance(value, type)


def _strip_optional(annotation: Any):
    """Return annotation without Optional, Annotated kinds are kept."""
    if get_origin(annotation) in (Union, UnionType):
        args = [arg for arg in get_args(annotation) if arg is not NoneType]
        if len(args) == 1:
            return _strip_optional(args[0])
    return annotation


def _strip_annotation(annotation: Any):
    """Return base type from Annotated or Optional annotation."""
    annotation = _strip_optional(annotation)
    if get_origin(annotation) is Annotated:
        return _strip_annotation(get_args(annotation)[0])
    return annotation


def _tag_name(item, tag: str) -> Optional[str]:
    """Return external name of field, None when field is skipped."""
    name = item.metadata.get(tag) or item.name
    if name == SKIP_TAG:
        return None
    return name


def _json_default(value: Any):
    if _is_instance(value):
        retval = {}
        for item in fields(value):
            name = _tag_name(item, JSON_TAG)
            if name is not None:
                retval[name] = getattr(value, item.name)
        return retval
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} "
                    "is not JSON serializable")


def dumps_json(value: Any, **kwargs) -> bytes:
    """Serialize value to JSON bytes with escaped HTML characters.

    >>> dumps_json({"html": "<b>", "id": 1})
    b'{"html":"\\\\u003cb\\\\u003e","id":1}'
    """
    kwargs.setdefault("separators", (',', ':'))
    kwargs.setdefault("ensure_ascii", False)
    kwargs.setdefault("default", _json_default)
    return JSONEncoderForHTML(**kwargs).encode(value).encode("utf-8")


def html_escape_json(data: bytes) -> bytes:
    """Escape HTML characters in serialized JSON.

    >>> html_escape_json(b'{"a":"<&>"}')
    b'{"a":"\\\\u003c\\\\u0026\\\\u003e"}'
    """
    for char, escaped in HTML_JSON_ESCAPES:
        data = data.replace(char, escaped)
    return data


def _json_type_error(value: Any, kind, name: str):
    return TypeError(f"Cannot unmarshal {type(value).__name__} "
                     f"into field `{name}' of type {kind.name}")


def _json_scalar(value: Any, kind, name: str):
    """Check decoded JSON value against field kind."""
    if isinstance(kind, StringKind):
        if not isinstance(value, str):
            raise _json_type_error(value, kind, name)
        return value
    if isinstance(kind, BoolKind):
        if not isinstance(value, bool):
            raise _json_type_error(value, kind, name)
        return value
    if isinstance(value, bool):
        raise _json_type_error(value, kind, name)
    if isinstance(kind, (IntKind, UintKind)):
        if not isinstance(value, int):
            raise _json_type_error(value, kind, name)
        # range check
        return convert(str(value), kind, name)
    if isinstance(kind, FloatKind):
        if not isinstance(value, (int, float)):
            raise _json_type_error(value, kind, name)
        if kind.bits == 32:
            return convert(repr(float(value)), kind, name)
        return float(value)
    return value


def _from_json(value: Any, annotation: Any, name: str = ""):
    """Rebuild value by type annotation."""
    kind = kind_of(_strip_optional(annotation))
    annotation = _strip_annotation(annotation)
    if value is None:
        return None
    if kind is not None:
        return _json_scalar(value, kind, name)
    if is_dataclass(annotation) and isinstance(annotation, type):
        return annotation(**_json_kwargs(annotation, value))
    origin = get_origin(annotation)
    if origin in (list, tuple, set) and isinstance(value, list):
        args = get_args(annotation)
        item_type = args[0] if args else Any
        return origin(_from_json(item, item_type, name) for item in value)
    if origin is dict and isinstance(value, dict):
        args = get_args(annotation)
        item_type = args[1] if len(args) == 2 else Any
        return {key: _from_json(val, item_type, name)
                for key, val in value.items()}
    return value


def _json_kwargs(cls: type, data: Any):
    """Return dictionary of field values for dataclass from JSON object."""
    if not isinstance(data, dict):
        raise TypeError(f"Cannot unmarshal {type(data).__name__} "
                        f"into {cls.__name__}")
    hints = get_type_hints(cls, include_extras=True)
    kwargs = {}
    for item in fields(cls):
        name = _tag_name(item, JSON_TAG)
        if name is None or name not in data:
            continue
        kwargs[item.name] = _from_json(data[name],
                                       hints.get(item.name, item.type),
                                       item.name)
    return kwargs


def loads_json(data: Union[bytes, str], target: Any = None):
    """Deserialize JSON data.

    Without target, decoded value is returned. Dataclass instance, dict or
    list target is updated in place and returned. Decode errors are raised
    as simplejson.JSONDecodeError.

    >>> loads_json(b'{"a": [1, 2]}')
    {'a': [1, 2]}
    """
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    value = json_loads(data)
    if target is None:
        return value
    if _is_instance(target):
        for key, val in _json_kwargs(type(target), value).items():
            setattr(target, key, val)
    elif isinstance(target, dict) and isinstance(value, dict):
        target.update(value)
    elif isinstance(target, list) and isinstance(value, list):
        target[:] = value
    else:
        raise TypeError(f"Cannot unmarshal {type(value).__name__} "
                        f"into {type(target).__name__}")
    return target


def _xml_tag(item):
    """Return (name, is attribute) for field or None if skipped."""
    name = _tag_name(item, XML_TAG)
    if name is None:
        return None
    name, _, flags = name.partition(',')
    return name or item.name, 'attr' in flags.split(',')


def _xml_text(value: Any):
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _xml_fill(element: Element, value: Any):
    """Append dataclass fields to element."""
    for item in fields(value):
        tag = _xml_tag(item)
        if tag is None:
            continue
        name, attr = tag
        val = getattr(value, item.name)
        if val is None:
            continue
        if attr:
            element.set(name, _xml_text(val))
        elif isinstance(val, (list, tuple)):
            for one in val:
                _xml_value(SubElement(element, name), one)
        else:
            _xml_value(SubElement(element, name), val)


def _xml_value(element: Element, value: Any):
    if _is_instance(value):
        _xml_fill(element, value)
    elif isinstance(value, (str, int, float)):
        element.text = _xml_text(value)
    else:
        raise TypeError(f"XML unsupported type {type(value).__name__}")


def dumps_xml(value: Any) -> bytes:
    """Serialize dataclass instance to XML bytes without declaration."""
    if not _is_instance(value):
        raise TypeError(f"XML unsupported type {type(value).__name__}")
    name = getattr(type(value), '__xml_name__', type(value).__name__)
    root = Element(name)
    _xml_fill(root, value)
    return tostring(root, encoding="unicode").encode("utf-8")


def _xml_convert(text: str, annotation: Any, name: str):
    base = _strip_annotation(annotation)
    if is_dataclass(base) and isinstance(base, type):
        raise UnsupportedFieldKind(name, base)
    kind = kind_of(_strip_optional(annotation))
    if kind is not None and not isinstance(kind, StringKind):
        text = text.strip()
    return convert(text, kind, name, base)


def _xml_kwargs(cls: type, element: Element):
    hints = get_type_hints(cls, include_extras=True)
    kwargs = {}
    for item in fields(cls):
        tag = _xml_tag(item)
        if tag is None:
            continue
        name, attr = tag
        annotation = hints.get(item.name, item.type)
        if attr:
            if name in element.attrib:
                kwargs[item.name] = _xml_convert(element.attrib[name],
                                                 annotation, item.name)
            continue
        base = _strip_annotation(annotation)
        if get_origin(base) in (list, tuple):
            args = get_args(base)
            item_type = args[0] if args else str
            kwargs[item.name] = get_origin(base)(
                _xml_element(child, item_type, item.name)
                for child in element.findall(name))
            continue
        child = element.find(name)
        if child is None:
            continue
        if is_dataclass(base) and isinstance(base, type):
            kwargs[item.name] = base(**_xml_kwargs(base, child))
        elif child.text:
            kwargs[item.name] = _xml_convert(child.text, annotation,
                                             item.name)
    return kwargs


def _xml_element(element: Element, annotation: Any, name: str):
    base = _strip_annotation(annotation)
    if is_dataclass(base) and isinstance(base, type):
        return base(**_xml_kwargs(base, element))
    return _xml_convert(element.text or "", annotation, name)


def loads_xml(data: Union[bytes, str], target: Any):
    """Deserialize XML data to dataclass target in place.

    Element texts and attributes are converted just like binding values.
    Parse errors and conversion errors are raised.
    """
    if not _is_instance(target):
        raise TypeError(f"XML target must be dataclass instance, "
                        f"not {type(target).__name__}")
    root = xml_fromstring(data)
    for key, val in _xml_kwargs(type(target), root).items():
        setattr(target, key, val)
        log.debug("XML %s.%s = %r", type(target).__name__, key, val)
    return target
