"""Populate a dataclass from a request.

``bind`` reads the JSON body, the matched path parameter, the query
string, and url-encoded form fields according to each field's source
tag, then coerces the raw values to the declared field types::

    @dataclass
    class UpdateItem:
        item_id: UInt32 = path("id", default=0)
        notify: bool = query("notify", default=False)
        title: str | None = body("title", default=None)

    params = await bind(request, UpdateItem)

A form-tagged field falls back to the query string when the body does
not carry its key. Missing values leave fields at their defaults; there
is no required-field enforcement here. Input problems raise
``BindError``; declaration mistakes raise ``ConfigurationError``.
"""

import functools
import json
import logging
from collections.abc import Callable
from typing import Any, TypeAlias, TypeVar

from switchyard.binding.coerce import UNSET, TypeMismatch, json_decoder, text_converter
from switchyard.binding.tags import FieldSpec, Source, field_specs, is_bindable
from switchyard.errors import (
    BindError,
    BindErrorKind,
    BodySyntaxError,
    ConfigurationError,
    FieldFormatError,
    FormParseError,
    UnknownBodyError,
    UnsupportedContentTypeError,
)
from switchyard.http.forms import FORM_URLENCODED
from switchyard.http.multidict import MultiDict
from switchyard.http.request import JSON_CONTENT_TYPE, Request

logger = logging.getLogger("switchyard.binding")

Plan: TypeAlias = tuple[tuple[FieldSpec, Callable[..., Any]], ...]


@functools.cache
def bind_plan(cls: type) -> Plan:
    """Pair every field with its resolved converter.

    Resolving up front means an unsupported field type is reported on
    the first bind, whatever the request carries.
    """
    plan = []
    for spec in field_specs(cls):
        if spec.source is Source.BODY:
            plan.append((spec, json_decoder(spec.annotation)))
        else:
            plan.append((spec, text_converter(spec.annotation)))
    return tuple(plan)


T = TypeVar("T")


async def bind(request: Request, target: T | type[T]) -> T:
    """Fill *target* from *request* and return it.

    *target* is either a dataclass instance, which is mutated in place,
    or a dataclass type, which is instantiated with no arguments first.

    Raises:
        UnsupportedContentTypeError: The request declares a content type
            that is neither JSON nor url-encoded form.
        BindError: The body or a field value could not be decoded.
            ``error`` holds a ``BodySyntaxError``, ``FieldFormatError``,
            ``UnknownBodyError`` or ``FormParseError``.
        ConfigurationError: *target* is not a dataclass, a field has no
            source tag or an unsupported type, or a tag does not fit the
            request (``path`` without a route parameter, ``form`` on a
            request that is not form-encoded).
    """
    instance = _instantiate(target)
    plan = bind_plan(type(instance))

    _check_content_type(request)

    try:
        await _bind_body(request, instance, plan)
        await _bind_fields(request, instance, plan)
    except BindErrorKind as exc:
        logger.debug("bind %s failed: %s", type(instance).__qualname__, exc)
        raise BindError(exc) from exc
    return instance


def _instantiate(target: Any) -> Any:
    if isinstance(target, type):
        if not is_bindable(target):
            msg = f"Bind target must be a dataclass, got {target!r}"
            raise ConfigurationError(msg)
        try:
            return target()
        except TypeError as exc:
            msg = f"Bind target {target.__qualname__} needs a default for every field"
            raise ConfigurationError(msg) from exc
    if not is_bindable(type(target)):
        msg = f"Bind target must be a dataclass, got {type(target).__name__!r}"
        raise ConfigurationError(msg)
    return target


def _check_content_type(request: Request) -> None:
    content_type = request.content_type
    if not content_type:
        return
    if content_type.startswith((FORM_URLENCODED, JSON_CONTENT_TYPE)):
        return
    raise UnsupportedContentTypeError(content_type)


async def _bind_body(request: Request, instance: Any, plan: Plan) -> None:
    if request.is_form:
        return
    raw = await request.body()
    if not raw:
        return

    try:
        document = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise BodySyntaxError(_printable(raw), exc) from exc

    if not isinstance(document, dict):
        mismatch = TypeMismatch("", document, type(instance).__name__)
        raise FieldFormatError("", mismatch) from mismatch

    for spec, decode in plan:
        if spec.source is not Source.BODY or spec.key not in document:
            continue
        try:
            value = decode(document[spec.key], spec.key)
        except TypeMismatch as exc:
            raise FieldFormatError(exc.field, exc) from exc
        except ConfigurationError:
            raise
        except Exception as exc:
            raise UnknownBodyError(_printable(raw), exc) from exc
        if value is not UNSET:
            setattr(instance, spec.attr, value)


async def _bind_fields(request: Request, instance: Any, plan: Plan) -> None:
    # Every form-encoded body is parsed, whether or not a field is form-tagged
    form = await _form(request) if request.is_form else None
    for spec, convert in plan:
        match spec.source:
            case Source.BODY:
                continue
            case Source.PATH:
                raw = _path_value(request, spec)
            case Source.QUERY:
                raw = request.query.get(spec.key)
            case Source.FORM:
                raw = _form_value(request, form, spec)

        if raw is None:
            continue
        try:
            value = convert(raw)
        except ConfigurationError:
            raise
        except Exception as exc:
            raise FieldFormatError(spec.attr, exc) from exc
        setattr(instance, spec.attr, value)


def _path_value(request: Request, spec: FieldSpec) -> str | None:
    if request.path_params is None:
        msg = (
            f"Field {spec.attr!r} is tagged path({spec.key!r}) but the matched route "
            f"{request.path!r} declares no path parameter"
        )
        raise ConfigurationError(msg)
    # An empty segment never reaches a parameterized route, but a table
    # built by hand may still carry one.
    return request.path_params.get(spec.key) or None


def _form_value(request: Request, form: MultiDict | None, spec: FieldSpec) -> str | None:
    """Body value for *spec*, else the query value of the same name."""
    if form is None:
        msg = (
            f"Field {spec.attr!r} is tagged form({spec.key!r}) but the request "
            f"content type is {request.content_type!r}, not {FORM_URLENCODED}"
        )
        raise ConfigurationError(msg)
    raw = form.get(spec.key)
    if raw is None:
        raw = request.query.get(spec.key)
    return raw


async def _form(request: Request) -> MultiDict:
    try:
        return await request.form()
    except ValueError as exc:
        raise FormParseError(exc) from exc


def _printable(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")
