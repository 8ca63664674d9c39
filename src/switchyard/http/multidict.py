"""Read-only multi-valued string mappings.

Headers, query strings, and url-encoded forms all carry repeated keys.
They share one representation: ``MultiDict`` maps a key to the ordered
list of its values, ``__getitem__`` returns the first one, and
``get_list`` returns them all. ``Headers`` folds key case.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from urllib.parse import parse_qsl


class MultiDict(Mapping[str, str]):
    """Immutable mapping of a key to one or more string values."""

    __slots__ = ("_data",)

    _data: dict[str, list[str]]

    def __init__(self, pairs: Iterable[tuple[str, str]] = ()) -> None:
        data: dict[str, list[str]] = {}
        for key, value in pairs:
            data.setdefault(self._normalize(key), []).append(value)
        object.__setattr__(self, "_data", data)

    @classmethod
    def from_urlencoded(cls, text: str, *, errors: str = "replace") -> MultiDict:
        """Parse ``a=1&b=&a=2`` style text. Blank values are kept."""
        return cls(parse_qsl(text, keep_blank_values=True, errors=errors))

    @staticmethod
    def _normalize(key: str) -> str:
        return key

    def __getitem__(self, key: str) -> str:
        return self._data[self._normalize(key)][0]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._normalize(key) in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __setattr__(self, name: str, value: object) -> None:
        msg = f"{type(self).__name__} is immutable"
        raise AttributeError(msg)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {v!r}" for k, v in self._data.items())
        return f"{type(self).__name__}({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        values = self._data.get(self._normalize(key))
        if values:
            return values[0]
        return default

    def get_list(self, key: str) -> list[str]:
        """Return every value for *key* in arrival order."""
        return list(self._data.get(self._normalize(key), ()))


class Headers(MultiDict):
    """Case-insensitive request headers, decoded from ASGI byte pairs."""

    __slots__ = ()

    @classmethod
    def from_raw(cls, raw: Iterable[tuple[bytes, bytes]]) -> Headers:
        return cls((name.decode("latin-1"), value.decode("latin-1")) for name, value in raw)

    @staticmethod
    def _normalize(key: str) -> str:
        return key.lower()
