"""Type coercion engine.

Two entry points, both resolved once per annotation and cached:

- ``text_converter(annotation)`` turns a raw string token (path
  parameter, query value, form value) into a field value.
- ``json_decoder(annotation)`` turns an already-parsed JSON value from
  the request body into a field value.

Dispatch is capability based: a fixed table of built-in converters,
then the ``from_text`` / ``from_json`` classmethods a type may expose.
Anything else is a declaration mistake and raises ``ConfigurationError``
when the converter is first resolved.
"""

import dataclasses
import datetime as dt
import functools
import json
import math
import re
import types
import typing
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeAlias

from switchyard.binding.types import FloatWidth, IntWidth, JSONDecodable, TextDecodable
from switchyard.errors import ConfigurationError

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_SIGNED = re.compile(r"[+-]?[0-9]+")
_UNSIGNED = re.compile(r"[0-9]+")
_RFC3339 = re.compile(
    r"(\d{4}-\d{2}-\d{2})T(\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})"
)
_HEX_FLOAT = re.compile(
    r"[+-]?0[xX](?:[0-9a-fA-F]+\.?[0-9a-fA-F]*|\.[0-9a-fA-F]+)[pP][+-]?[0-9]+"
)
_INFINITY = re.compile(r"[+-]?inf(?:inity)?", re.IGNORECASE)
_UUID_CANONICAL = r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
_UUID = re.compile(
    "|".join(
        (
            _UUID_CANONICAL,
            "(?i:urn:uuid:)" + _UUID_CANONICAL,
            r"\{" + _UUID_CANONICAL + r"\}",
            '"' + _UUID_CANONICAL + '"',
            "[0-9a-fA-F]{32}",
        )
    )
)

# Returned by JSON decoders when the field must be left untouched
UNSET: Any = object()


class TypeMismatch(ValueError):  # noqa: N818
    """A JSON value of the wrong kind for a built-in field type."""

    def __init__(self, field: str, value: Any, expected: str) -> None:
        self.field = field
        msg = f"cannot decode JSON {_json_kind(value)} into {expected} (field {field!r})"
        super().__init__(msg)


@dataclass(frozen=True, slots=True)
class FieldType:
    """An annotation with ``Optional`` and ``Annotated`` peeled off."""

    base: Any
    optional: bool = False
    width: IntWidth | FloatWidth | None = None


def resolve(annotation: Any) -> FieldType:
    """Peel ``T | None`` and ``Annotated[T, width]`` off *annotation*.

    Only one level of optionality is understood. A union of two or more
    non-``None`` members raises ``ConfigurationError``.
    """
    optional = False
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        members = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(members) != 1:
            msg = f"Unsupported field type {annotation!r}: only 'T | None' unions are allowed"
            raise ConfigurationError(msg)
        optional = True
        annotation = members[0]

    width = None
    if typing.get_origin(annotation) is typing.Annotated:
        for meta in annotation.__metadata__:
            if isinstance(meta, (IntWidth, FloatWidth)):
                width = meta
        annotation = annotation.__origin__

    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        msg = f"Unsupported field type {annotation!r}: nested optional or union"
        raise ConfigurationError(msg)
    return FieldType(annotation, optional, width)


def quote_scalar(raw: str) -> str:
    """Wrap *raw* in double quotes unless it already starts and ends with one.

    Query, path, and form values arrive unquoted, but ``from_json``
    expects JSON scalar syntax.
    """
    if raw.startswith('"') and raw.endswith('"'):
        return raw
    return f'"{raw}"'


# -- Scalar parsers --


def parse_bool(raw: str) -> bool:
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    msg = f"invalid boolean: {raw!r}"
    raise ValueError(msg)


def parse_int(raw: str, width: IntWidth | None = None) -> int:
    """Base-10 integer; signed unless *width* says otherwise."""
    pattern = _SIGNED if width is None or width.signed else _UNSIGNED
    if pattern.fullmatch(raw) is None:
        label = width.label if width is not None else "int"
        msg = f"invalid literal for {label}: {raw!r}"
        raise ValueError(msg)
    value = int(raw)
    return width.check(value) if width is not None else value


def parse_float(raw: str, width: FloatWidth | None = None) -> float:
    """Decimal or ``0x1.8p3`` hex float; finite unless spelled ``inf``."""
    label = width.label if width is not None else "float"
    if raw != raw.strip() or "_" in raw:
        msg = f"invalid literal for {label}: {raw!r}"
        raise ValueError(msg)
    try:
        value = float.fromhex(raw) if _HEX_FLOAT.fullmatch(raw) else float(raw)
    except OverflowError:
        value = math.inf
    if math.isinf(value) and _INFINITY.fullmatch(raw) is None:
        msg = f"value out of range for {label}: {raw!r}"
        raise ValueError(msg)
    return width.check(value) if width is not None else value


def parse_datetime(raw: str) -> dt.datetime:
    """RFC 3339 timestamp with a mandatory offset, e.g. ``2006-01-02T15:04:05Z``."""
    m = _RFC3339.fullmatch(raw)
    if m is None:
        msg = f"not an RFC 3339 timestamp: {raw!r}"
        raise ValueError(msg)
    day, clock, fraction, zone = m.groups()
    micros = (fraction or "")[:6].ljust(6, "0")
    offset = "+00:00" if zone == "Z" else zone
    return dt.datetime.fromisoformat(f"{day}T{clock}.{micros}{offset}")


def parse_uuid(raw: str) -> uuid.UUID:
    """Hyphenated, bare, braced, quoted, or ``urn:uuid:`` prefixed UUIDs.

    Only those exact shapes are accepted; ``uuid.UUID`` on its own also
    takes stray hyphens and unbalanced braces.
    """
    if _UUID.fullmatch(raw) is None:
        msg = f"invalid UUID: {raw!r}"
        raise ValueError(msg)
    if len(raw) == 45:
        raw = raw[9:]
    elif len(raw) == 38:
        raw = raw[1:-1]
    return uuid.UUID(raw)


_EXTENSIONS: dict[type, Callable[[str], Any]] = {
    dt.datetime: parse_datetime,
    dt.date: dt.date.fromisoformat,
    uuid.UUID: parse_uuid,
}


def _has_capability(cls: Any, protocol: type) -> bool:
    if typing.get_origin(cls) is not None or not isinstance(cls, type):
        return False
    return issubclass(cls, protocol)


# -- Text tokens --


@functools.cache
def text_converter(annotation: Any) -> Callable[[str], Any]:
    """Return a callable converting a raw token for *annotation*.

    The callable raises ``ValueError`` (or whatever a custom decoder
    raises) on malformed input.
    """
    ft = resolve(annotation)
    base = ft.base

    if base is str:
        return str
    if base is bool:
        return parse_bool
    if base is int:
        width = ft.width if isinstance(ft.width, IntWidth) else None
        return functools.partial(parse_int, width=width)
    if base is float:
        width = ft.width if isinstance(ft.width, FloatWidth) else None
        return functools.partial(parse_float, width=width)
    if base in _EXTENSIONS:
        return _EXTENSIONS[base]
    if _has_capability(base, TextDecodable):
        return base.from_text
    if _has_capability(base, JSONDecodable):
        return lambda raw: base.from_json(quote_scalar(raw))

    msg = f"Unsupported field type {annotation!r} for path, query, or form binding"
    raise ConfigurationError(msg)


def coerce_text(raw: str, annotation: Any) -> Any:
    """Convert *raw* to a value for a field annotated *annotation*."""
    return text_converter(annotation)(raw)


# -- JSON values --

JSONDecoder: TypeAlias = Callable[[Any, str], Any]


@functools.cache
def json_decoder(annotation: Any) -> JSONDecoder:
    """Return ``decode(value, field_path)`` for *annotation*.

    ``null`` clears an optional field and returns ``UNSET`` for a
    required one, leaving it untouched. Built-in mismatches raise
    ``TypeMismatch``; extension decoders raise their own errors.
    """
    ft = resolve(annotation)
    inner = _json_decoder_for(ft)

    def decode(value: Any, where: str) -> Any:
        if value is None:
            return None if ft.optional else UNSET
        return inner(value, where)

    return decode


def _json_decoder_for(ft: FieldType) -> JSONDecoder:
    base = ft.base
    origin = typing.get_origin(base)

    if base is Any or base is object:
        return lambda value, where: value
    if base is str:
        return _expect(str, "str")
    if base is bool:
        return _expect(bool, "bool")
    if base is int:
        return _json_int(ft.width if isinstance(ft.width, IntWidth) else None)
    if base is float:
        return _json_float(ft.width if isinstance(ft.width, FloatWidth) else None)
    if origin is list:
        (item_type,) = typing.get_args(base) or (Any,)
        return _json_list(item_type)
    if origin is dict:
        key_type, item_type = typing.get_args(base) or (str, Any)
        if key_type is not str:
            msg = f"Unsupported field type {base!r}: JSON object keys are strings"
            raise ConfigurationError(msg)
        return _json_dict(item_type)
    if isinstance(base, type) and dataclasses.is_dataclass(base):
        return _json_dataclass(base)
    if _has_capability(base, JSONDecodable):
        return lambda value, where: base.from_json(json.dumps(value))
    if base in _EXTENSIONS or _has_capability(base, TextDecodable):
        parse = _EXTENSIONS.get(base) or base.from_text

        def decode_text(value: Any, where: str) -> Any:
            if not isinstance(value, str):
                raise TypeMismatch(where, value, getattr(base, "__name__", repr(base)))
            return parse(value)

        return decode_text

    msg = f"Unsupported field type {base!r} for body binding"
    raise ConfigurationError(msg)


def _expect(kind: type, label: str) -> JSONDecoder:
    def decode(value: Any, where: str) -> Any:
        if type(value) is not kind:
            raise TypeMismatch(where, value, label)
        return value

    return decode


def _json_int(width: IntWidth | None) -> JSONDecoder:
    label = width.label if width is not None else "int"

    def decode(value: Any, where: str) -> int:
        if type(value) is not int:
            raise TypeMismatch(where, value, label)
        if width is not None:
            try:
                width.check(value)
            except ValueError:
                raise TypeMismatch(where, value, label) from None
        return value

    return decode


def _json_float(width: FloatWidth | None) -> JSONDecoder:
    label = width.label if width is not None else "float"

    def decode(value: Any, where: str) -> float:
        if type(value) not in (int, float):
            raise TypeMismatch(where, value, label)
        try:
            number = float(value)
            if not math.isfinite(number):
                raise ValueError(number)
            return width.check(number) if width is not None else number
        except (OverflowError, ValueError):
            raise TypeMismatch(where, value, label) from None

    return decode


def _json_list(item_type: Any) -> JSONDecoder:
    item = json_decoder(item_type)

    def decode(value: Any, where: str) -> list[Any]:
        if type(value) is not list:
            raise TypeMismatch(where, value, "list")
        result = []
        for i, element in enumerate(value):
            decoded = item(element, f"{where}[{i}]")
            if decoded is UNSET:
                raise TypeMismatch(f"{where}[{i}]", element, repr(item_type))
            result.append(decoded)
        return result

    return decode


def _json_dict(item_type: Any) -> JSONDecoder:
    item = json_decoder(item_type)

    def decode(value: Any, where: str) -> dict[str, Any]:
        if type(value) is not dict:
            raise TypeMismatch(where, value, "object")
        result = {}
        for key, element in value.items():
            decoded = item(element, f"{where}.{key}")
            if decoded is UNSET:
                raise TypeMismatch(f"{where}.{key}", element, repr(item_type))
            result[key] = decoded
        return result

    return decode


def _json_dataclass(cls: type) -> JSONDecoder:
    hints = typing.get_type_hints(cls, include_extras=True)
    members = [
        (f.name, f.metadata.get("body", f.name), json_decoder(hints[f.name]))
        for f in dataclasses.fields(cls)
    ]

    def decode(value: Any, where: str) -> Any:
        if type(value) is not dict:
            raise TypeMismatch(where, value, cls.__name__)
        try:
            instance = cls()
        except TypeError as exc:
            msg = f"Nested body type {cls.__qualname__} needs defaults for every field"
            raise ConfigurationError(msg) from exc
        for attr, key, member in members:
            if key not in value:
                continue
            decoded = member(value[key], f"{where}.{key}")
            if decoded is not UNSET:
                setattr(instance, attr, decoded)
        return instance

    return decode


def _json_kind(value: Any) -> str:
    match value:
        case None:
            return "null"
        case bool():
            return "bool"
        case int() | float():
            return f"number {value}"
        case str():
            return "string"
        case list():
            return "array"
        case dict():
            return "object"
    return type(value).__name__
