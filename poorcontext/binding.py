"""Binding of query string and form values to dataclass instances.

Target is a dataclass instance, fields are matched by tags stored in field
metadata. Tag namespace is selected by binder, so one class could have
different names for query string and for form:

.. code:: python

    @dataclass
    class Search:
        text: str = tagged("", url="q", form="text")
        page: Uint16 = tagged(1, url="p")
        exact: bool = tagged(False, url="exact", form="-")

    search = Search()
    Binder("url").bind(search, {"q": ["poor"], "p": ["2"]})

Supported field types are str, int, float, bool and sized integer and float
aliases from this module. Other field types raise UnsupportedFieldKind when
there is a value for them.

:Exceptions: BindError, InvalidTarget, UnsupportedFieldKind, ConversionError
:Classes:   StringKind, IntKind, UintKind, FloatKind, BoolKind, Descriptor,
            Binder
:Functions: bind, tagged, kind_of, descriptors, convert
"""
import re
from dataclasses import dataclass, field, fields, is_dataclass, MISSING
from logging import getLogger
from math import isinf
from struct import pack, unpack
from typing import (Annotated, Any, Mapping, NamedTuple, Optional, Sequence,
                    Union, get_args, get_origin, get_type_hints)

log = getLogger("poorcontext")

SKIP_TAG = "-"

RE_INT = re.compile(r"[+-]?[0-9]+")
RE_UINT = re.compile(r"[0-9]+")
RE_FLOAT = re.compile(
    r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
RE_HEX_FLOAT = re.compile(
    r"[+-]?0[xX](?:[0-9a-fA-F]+\.?[0-9a-fA-F]*|\.[0-9a-fA-F]+)"
    r"[pP][+-]?[0-9]+")
RE_INF = re.compile(r"[+-]?inf(?:inity)?|nan", re.IGNORECASE)

TRUE_VALUES = frozenset(("1", "t", "T", "TRUE", "true", "True"))
FALSE_VALUES = frozenset(("0", "f", "F", "FALSE", "false", "False"))


class BindError(ValueError):
    """Base class for all binding errors."""


class InvalidTarget(BindError, TypeError):
    """Target is not mutable dataclass instance."""


class UnsupportedFieldKind(BindError, TypeError):
    """Field type could not be converted from string."""

    def __init__(self, field_name: str, annotation: Any):
        super().__init__(
            f"Unsupported type {annotation!r} of field `{field_name}'")
        self.field = field_name
        self.annotation = annotation


class ConversionError(BindError):
    """String value could not be converted to field type.

    Attributes field, raw and kind identify what was wrong, original
    exception is chained as __cause__.
    """

    def __init__(self, field_name: str, raw: str, kind: 'Kind',
                 reason: str = "invalid syntax"):
        super().__init__(
            f"Field `{field_name}': converting {raw!r} to {kind.name}: "
            f"{reason}")
        self.field = field_name
        self.raw = raw
        self.kind = kind
        self.reason = reason


@dataclass(frozen=True)
class StringKind:
    """Value is assigned verbatim."""
    name = "string"


@dataclass(frozen=True)
class IntKind:
    """Signed base-10 integer with bit size."""
    bits: int = 64

    @property
    def name(self):
        """Kind name like int32."""
        return f"int{self.bits}"


@dataclass(frozen=True)
class UintKind:
    """Unsigned base-10 integer with bit size."""
    bits: int = 64

    @property
    def name(self):
        """Kind name like uint8."""
        return f"uint{self.bits}"


@dataclass(frozen=True)
class FloatKind:
    """Floating point number, 32 or 64 bit."""
    bits: int = 64

    @property
    def name(self):
        """Kind name like float32."""
        return f"float{self.bits}"


@dataclass(frozen=True)
class BoolKind:
    """Boolean literal like 1, t, true or 0, f, false."""
    name = "bool"


Kind = Union[StringKind, IntKind, UintKind, FloatKind, BoolKind]
KINDS = (StringKind, IntKind, UintKind, FloatKind, BoolKind)

BASIC_KINDS = {
    str: StringKind(),
    bool: BoolKind(),
    int: IntKind(64),
    float: FloatKind(64),
}

# sized types for dataclass annotations
Int8 = Annotated[int, IntKind(8)]
Int16 = Annotated[int, IntKind(16)]
Int32 = Annotated[int, IntKind(32)]
Int64 = Annotated[int, IntKind(64)]
Uint = Annotated[int, UintKind(64)]
Uint8 = Annotated[int, UintKind(8)]
Uint16 = Annotated[int, UintKind(16)]
Uint32 = Annotated[int, UintKind(32)]
Uint64 = Annotated[int, UintKind(64)]
Uintptr = Annotated[int, UintKind(64)]
Float32 = Annotated[float, FloatKind(32)]
Float64 = Annotated[float, FloatKind(64)]


class Descriptor(NamedTuple):
    """Field descriptor used by binding."""
    tag: str
    name: str
    kind: Optional[Kind]
    annotation: Any


def tagged(default: Any = MISSING, *, default_factory: Any = MISSING,
           **tags: str):
    """Return dataclass field with tags in its metadata.

    >>> from dataclasses import fields
    >>> @dataclass
    ... class User:
    ...     name: str = tagged("", form="n", url="name")
    >>> fields(User)[0].metadata["url"]
    'name'
    """
    return field(default=default, default_factory=default_factory,
                 metadata=tags)


def kind_of(annotation: Any) -> Optional[Kind]:
    """Return kind for type annotation or None if it is not supported.

    >>> kind_of(int)
    IntKind(bits=64)
    >>> kind_of(Uint8)
    UintKind(bits=8)
    >>> print(kind_of(list))
    None
    """
    if get_origin(annotation) is Annotated:
        for meta in annotation.__metadata__:
            if isinstance(meta, KINDS):
                return meta
        annotation = get_args(annotation)[0]
    if isinstance(annotation, type):
        return BASIC_KINDS.get(annotation)
    return None


def check_target(target: Any):
    """Raise InvalidTarget if target could not be bound."""
    if target is None:
        raise InvalidTarget("Binding target is None")
    if isinstance(target, type) or not is_dataclass(target):
        raise InvalidTarget(
            f"Binding target must be dataclass instance, not {target!r}")
    if target.__dataclass_params__.frozen:
        raise InvalidTarget(
            f"Binding target {type(target).__name__} is frozen")


def descriptors(target: Any, tag: str):
    """Return list of descriptors for fields with tag in declaration order.

    Fields with no tag, empty tag or skip tag ``-`` are left out.
    """
    check_target(target)
    hints = get_type_hints(type(target), include_extras=True)
    retval = []
    for item in fields(target):
        name = item.metadata.get(tag)
        if not name or name == SKIP_TAG:
            continue
        annotation = hints.get(item.name, item.type)
        retval.append(
            Descriptor(name, item.name, kind_of(annotation), annotation))
    return retval


def _parse_int(raw: str, kind: IntKind):
    if not RE_INT.fullmatch(raw):
        raise ValueError("invalid syntax")
    value = int(raw)
    limit = 1 << (kind.bits - 1)
    if not -limit <= value < limit:
        raise ValueError("value out of range")
    return value


def _parse_uint(raw: str, kind: UintKind):
    if not RE_UINT.fullmatch(raw):
        raise ValueError("invalid syntax")
    value = int(raw)
    if value >= 1 << kind.bits:
        raise ValueError("value out of range")
    return value


def _parse_float(raw: str, kind: FloatKind):
    if RE_HEX_FLOAT.fullmatch(raw):
        value = float.fromhex(raw)
    elif RE_FLOAT.fullmatch(raw) or RE_INF.fullmatch(raw):
        value = float(raw)
    else:
        raise ValueError("invalid syntax")
    if isinf(value) and not RE_INF.fullmatch(raw):
        raise ValueError("value out of range")
    if kind.bits == 32:
        # round to single precision, struct raises OverflowError
        value = unpack("<f", pack("<f", value))[0]
    return value


def _parse_bool(raw: str):
    if raw in TRUE_VALUES:
        return True
    if raw in FALSE_VALUES:
        return False
    raise ValueError("invalid syntax")


def convert(raw: str, kind: Optional[Kind], field_name: str = "",
            annotation: Any = None):
    """Convert string to value of kind.

    >>> convert("-12", IntKind(8))
    -12
    >>> convert("t", BoolKind())
    True
    >>> convert("300", UintKind(8), "age")
    Traceback (most recent call last):
    ...
    poorcontext.binding.ConversionError: Field `age': converting '300' to \
uint8: value out of range
    """
    try:
        if isinstance(kind, StringKind):
            return raw
        if isinstance(kind, BoolKind):
            return _parse_bool(raw)
        if isinstance(kind, IntKind):
            return _parse_int(raw, kind)
        if isinstance(kind, UintKind):
            return _parse_uint(raw, kind)
        if isinstance(kind, FloatKind):
            return _parse_float(raw, kind)
    except OverflowError as err:
        raise ConversionError(field_name, raw, kind,
                              "value out of range") from err
    except ValueError as err:
        raise ConversionError(field_name, raw, kind, str(err)) from err
    raise UnsupportedFieldKind(field_name, annotation)


def first_value(values: Mapping[str, Sequence[str]], key: str):
    """Return first value for key, empty string if there is no one."""
    vals = values.get(key)
    if vals is None:
        return ""
    if isinstance(vals, str):
        return vals
    for val in vals:
        return val
    return ""


def bind(target: Any, values: Mapping[str, Sequence[str]], tag: str):
    """Set target fields from values by tag.

    Only first value for each key is used. Empty value is the same as
    missing key, field stays untouched. First error stops binding, fields set
    before stay set.
    """
    check_target(target)
    if not values:
        return
    for desc in descriptors(target, tag):
        raw = first_value(values, desc.tag)
        if raw == "":
            continue
        value = convert(raw, desc.kind, desc.name, desc.annotation)
        setattr(target, desc.name, value)
        log.debug("Bind %s.%s = %r", type(target).__name__, desc.name, value)


class Binder:
    """Stateless binder for one tag namespace.

    >>> @dataclass
    ... class Person:
    ...     name: str = tagged("", form="n")
    ...     age: int = tagged(0, form="a")
    >>> person = Person()
    >>> Binder("form").bind(person, {"n": ["Alice"], "a": ["30"]})
    >>> person
    Person(name='Alice', age=30)
    """

    def __init__(self, tag: str):
        if not tag:
            raise ValueError("Binder tag must be set.")
        self.__tag = tag

    @property
    def tag(self):
        """Metadata key with external field name."""
        return self.__tag

    def bind(self, target: Any, values: Mapping[str, Sequence[str]]):
        """Bind values to target by tag of this binder."""
        bind(target, values, self.__tag)

    def __repr__(self):
        return f"Binder({self.__tag!r})"
