"""Immutable HTTP request.

Frozen metadata with async body access. The body is read from the
ASGI receive channel once and cached, so the binder, middleware, and
handler can each read the same bytes.
"""

from __future__ import annotations

import json as json_module
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field, replace
from typing import Any

from switchyard._internal.asgi import Receive, Scope
from switchyard.http.forms import is_form_content_type, parse_form
from switchyard.http.multidict import Headers, MultiDict

JSON_CONTENT_TYPE = "application/json"


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    ``path_params`` is the path parameter table: a one-entry dict when the
    matched route declares a parameter, ``None`` otherwise (including
    before routing has happened).
    """

    method: str
    path: str
    headers: Headers
    query: MultiDict
    http_version: str = "1.1"
    client: tuple[str, int] | None = None
    path_params: dict[str, str] | None = None

    # Private: ASGI receive callable for body streaming
    _receive: Receive | None = field(default=None, repr=False, compare=False)

    # Private: mutable cache for body and parsed form data, shared by
    # every copy made with ``with_path_params``
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def is_form(self) -> bool:
        """True if the body is declared as url-encoded form data."""
        return is_form_content_type(self.content_type)

    @property
    def is_json(self) -> bool:
        ct = self.content_type
        return ct is not None and ct.startswith(JSON_CONTENT_TYPE)

    @property
    def url(self) -> str:
        """Path plus query string, as received."""
        qs = self._cache.get("_query_string", b"")
        if qs:
            return f"{self.path}?{qs.decode('latin-1')}"
        return self.path

    def path_param(self, name: str) -> str | None:
        """Value of the named path parameter, or ``None``."""
        if self.path_params is None:
            return None
        return self.path_params.get(name)

    def with_path_params(self, path_params: dict[str, str] | None) -> Request:
        """Return a copy carrying the routing result.

        The body cache is shared, so a body read before routing is still
        available afterwards.
        """
        return replace(self, path_params=path_params)

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body.

        The receive channel is consumed once; later calls return the
        cached bytes unchanged.
        """
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks = [chunk async for chunk in self.stream()]
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks.

        Yields the cached body instead when it was already read.
        """
        if "_body" in self._cache:
            yield self._cache["_body"]
            return
        if self._receive is None:
            return
        while True:
            message = await self._receive()
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def text(self) -> str:
        """Read the body as text (UTF-8)."""
        raw = await self.body()
        return raw.decode("utf-8")

    async def json(self) -> Any:
        """Parse the body as JSON."""
        raw = await self.body()
        return json_module.loads(raw)

    async def form(self) -> MultiDict:
        """Parse the body as url-encoded form data.

        Result is cached. Raises ``ValueError`` when the request is not
        form-encoded or the body is malformed.
        """
        if "_form" in self._cache:
            return self._cache["_form"]
        if not self.is_form:
            msg = f"Not a form request: {self.content_type!r}"
            raise ValueError(msg)
        result = parse_form(await self.body())
        self._cache["_form"] = result
        return result

    # -- Factory --

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        query_string: bytes = scope.get("query_string", b"")
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=Headers.from_raw(scope.get("headers", ())),
            query=MultiDict.from_urlencoded(query_string.decode("latin-1")),
            http_version=scope.get("http_version", "1.1"),
            client=tuple(client) if client else None,
            _receive=receive,
            _cache={"_query_string": query_string},
        )
