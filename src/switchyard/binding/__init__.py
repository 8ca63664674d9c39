"""Request binding: tag dataclass fields, then ``await bind(request, Target)``."""

from switchyard.binding.bind import bind
from switchyard.binding.coerce import coerce_text, quote_scalar
from switchyard.binding.tags import FieldSpec, Source, body, field_specs, form, path, query
from switchyard.binding.types import (
    Float32,
    Float64,
    Int8,
    Int16,
    Int32,
    Int64,
    JSONDecodable,
    TextDecodable,
    UInt,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
)

__all__ = [
    "FieldSpec",
    "Float32",
    "Float64",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "JSONDecodable",
    "Source",
    "TextDecodable",
    "UInt",
    "UInt8",
    "UInt16",
    "UInt32",
    "UInt64",
    "bind",
    "body",
    "coerce_text",
    "field_specs",
    "form",
    "path",
    "query",
    "quote_scalar",
]
