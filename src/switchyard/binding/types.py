"""Field types the binder understands beyond plain ``str``/``int``/``float``/``bool``.

Sized numbers are ``Annotated`` aliases, so a field still holds a plain
``int`` or ``float`` at runtime; the marker only constrains parsing::

    @dataclass
    class Page:
        size: UInt8 = query("size", default=20)   # "256" is rejected

Classes can opt into binding by implementing one of two decode
capabilities as classmethods:

- ``from_text(cls, text: str)`` — receives the raw, unquoted token.
- ``from_json(cls, raw: str)`` — receives a JSON scalar document, e.g.
  ``'"abc"'`` or ``'42'``.

When a class has both, ``from_text`` is used for path, query, and form
values; the JSON body prefers ``from_json``.
"""

import struct
from dataclasses import dataclass
from typing import Annotated, Protocol, Self, runtime_checkable


@dataclass(frozen=True, slots=True)
class IntWidth:
    """Bit width and signedness of a sized integer field."""

    bits: int
    signed: bool

    @property
    def min(self) -> int:
        return -(1 << (self.bits - 1)) if self.signed else 0

    @property
    def max(self) -> int:
        return (1 << (self.bits - 1)) - 1 if self.signed else (1 << self.bits) - 1

    @property
    def label(self) -> str:
        return f"{'int' if self.signed else 'uint'}{self.bits}"

    def check(self, value: int) -> int:
        if not self.min <= value <= self.max:
            msg = f"value out of range for {self.label}: {value}"
            raise ValueError(msg)
        return value


@dataclass(frozen=True, slots=True)
class FloatWidth:
    """Precision of a sized float field."""

    bits: int

    @property
    def label(self) -> str:
        return f"float{self.bits}"

    def check(self, value: float) -> float:
        if self.bits == 64:
            return value
        try:
            return struct.unpack("f", struct.pack("f", value))[0]
        except OverflowError:
            msg = f"value out of range for {self.label}: {value}"
            raise ValueError(msg) from None


Int8 = Annotated[int, IntWidth(8, signed=True)]
Int16 = Annotated[int, IntWidth(16, signed=True)]
Int32 = Annotated[int, IntWidth(32, signed=True)]
Int64 = Annotated[int, IntWidth(64, signed=True)]
UInt = Annotated[int, IntWidth(64, signed=False)]
UInt8 = Annotated[int, IntWidth(8, signed=False)]
UInt16 = Annotated[int, IntWidth(16, signed=False)]
UInt32 = Annotated[int, IntWidth(32, signed=False)]
UInt64 = Annotated[int, IntWidth(64, signed=False)]
Float32 = Annotated[float, FloatWidth(32)]
Float64 = Annotated[float, FloatWidth(64)]


@runtime_checkable
class TextDecodable(Protocol):
    """A type that parses itself from a raw text token."""

    @classmethod
    def from_text(cls, text: str) -> Self: ...


@runtime_checkable
class JSONDecodable(Protocol):
    """A type that parses itself from a JSON scalar document."""

    @classmethod
    def from_json(cls, raw: str) -> Self: ...
