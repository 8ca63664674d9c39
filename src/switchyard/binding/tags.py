"""Source tags and the per-class field descriptor table.

Every field of a bindable dataclass carries exactly one source tag in
its ``dataclasses.field`` metadata — ``body``, ``path``, ``query`` or
``form`` — naming the external key to read::

    @dataclass
    class UpdateItem:
        item_id: int = path("id", default=0)
        dry_run: bool = query("dry_run", default=False)
        title: str = body("title", default="")

The helpers are thin wrappers over ``dataclasses.field``; writing the
metadata by hand (``field(metadata={"query": "q"})``) is equivalent.
If several keys are present the first of body, path, query, form wins.
"""

import dataclasses
import enum
import functools
import typing
from dataclasses import dataclass
from typing import Any

from switchyard.errors import ConfigurationError


class Source(enum.StrEnum):
    """Where a field's raw value comes from, in precedence order."""

    BODY = "body"
    PATH = "path"
    QUERY = "query"
    FORM = "form"


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """How one dataclass attribute is bound."""

    attr: str
    key: str
    source: Source
    annotation: Any


def _tagged(source: Source, name: str, kwargs: dict[str, Any]) -> Any:
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[source.value] = name
    return dataclasses.field(metadata=metadata, **kwargs)


def body(name: str, **kwargs: Any) -> Any:
    """A field populated from the JSON body key *name*."""
    return _tagged(Source.BODY, name, kwargs)


def path(name: str, **kwargs: Any) -> Any:
    """A field populated from the route's path parameter *name*."""
    return _tagged(Source.PATH, name, kwargs)


def query(name: str, **kwargs: Any) -> Any:
    """A field populated from the query parameter *name*."""
    return _tagged(Source.QUERY, name, kwargs)


def form(name: str, **kwargs: Any) -> Any:
    """A field populated from the url-encoded form field *name*."""
    return _tagged(Source.FORM, name, kwargs)


def is_bindable(annotation: Any) -> bool:
    """True if *annotation* is a dataclass type (not an instance)."""
    return isinstance(annotation, type) and dataclasses.is_dataclass(annotation)


@functools.cache
def field_specs(cls: type) -> tuple[FieldSpec, ...]:
    """Build the descriptor table for *cls*, once per class.

    Raises ``ConfigurationError`` if *cls* is not a dataclass or one of
    its fields has no source tag.
    """
    if not is_bindable(cls):
        msg = f"Bind target must be a dataclass, got {cls!r}"
        raise ConfigurationError(msg)

    hints = typing.get_type_hints(cls, include_extras=True)
    specs: list[FieldSpec] = []
    for f in dataclasses.fields(cls):
        for source in Source:
            if source.value in f.metadata:
                specs.append(FieldSpec(f.name, f.metadata[source.value], source, hints[f.name]))
                break
        else:
            tags = ", ".join(s.value for s in Source)
            msg = f"{cls.__qualname__}.{f.name} has no source tag; expected one of: {tags}"
            raise ConfigurationError(msg)
    return tuple(specs)
