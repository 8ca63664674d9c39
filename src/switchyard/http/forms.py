"""Url-encoded form parsing.

Only ``application/x-www-form-urlencoded`` bodies are understood.
Multipart uploads are out of scope and rejected by the binder's
content-type gate before parsing is attempted.
"""

import re

from switchyard.http.multidict import MultiDict

FORM_URLENCODED = "application/x-www-form-urlencoded"

# A "%" not followed by two hex digits
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def is_form_content_type(content_type: str | None) -> bool:
    """True when *content_type* declares a url-encoded form body."""
    return content_type is not None and content_type.startswith(FORM_URLENCODED)


def parse_form(body: bytes) -> MultiDict:
    """Parse a url-encoded body into a ``MultiDict``.

    Parsing is strict: the body and every percent escape must decode as
    UTF-8, and a stray ``%`` is rejected.

    Raises:
        UnicodeDecodeError: The body or an escape is not valid UTF-8.
        ValueError: The body contains a malformed percent escape.
    """
    text = body.decode("utf-8")
    bad = _BAD_ESCAPE.search(text)
    if bad is not None:
        msg = f"invalid URL escape {text[bad.start() : bad.start() + 3]!r}"
        raise ValueError(msg)
    return MultiDict.from_urlencoded(text, errors="strict")
