"""HTTP response with chainable .with_*() transformation API.

Each transformation returns a new Response. A request produces exactly
one Response value, which the server sends once after the pipeline
returns.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

JSON = "application/json"
PLAIN_TEXT = "text/plain; charset=utf-8"
OCTET_STREAM = "application/octet-stream"


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations."""

    body: str | bytes = b""
    status: int = 200
    content_type: str = JSON
    headers: tuple[tuple[str, str], ...] = ()

    # -- Chainable transformations --

    def with_status(self, status: int) -> Response:
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        """Return a new Response with additional headers."""
        return replace(self, headers=(*self.headers, *headers.items()))

    def with_content_type(self, content_type: str) -> Response:
        """Return a new Response with a different content type."""
        return replace(self, content_type=content_type)

    # -- Body helpers --

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        """Body as string."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body

    def json(self) -> Any:
        """Body parsed as JSON."""
        return json_module.loads(self.body_bytes)


def respond(content_type: str, status: int, body: str | bytes) -> Response:
    """Build a response from its three parts."""
    return Response(body=body, status=status, content_type=content_type)


def respond_json(status: int, data: Any) -> Response:
    """Serialize *data* as JSON and build an ``application/json`` response.

    Serialization failures propagate (``TypeError`` / ``ValueError``);
    inside a request they surface as the internal-error response.
    """
    return respond(JSON, status, json_module.dumps(data).encode("utf-8"))


def message_response(status: int, message: str) -> Response:
    """JSON ``{"message": ...}`` body, the shape of every built-in error."""
    return respond_json(status, {"message": message})
