"""The composed request pipeline.

Built once when the app freezes::

    pre-routing middleware
      -> routing
         -> route middleware -> post-routing middleware -> endpoint

Each route gets its own precomposed chain, so a request costs one
dictionary lookup to reach it. When routing finds nothing the configured
no-route response is returned straight back through the pre-routing
middleware; post-routing middleware never sees it.

The endpoint stage injects handler arguments, calls the handler, and
negotiates its return value. Input errors raised there (``BindError``,
``UnsupportedContentTypeError``, ``HTTPError``) become 4xx responses that
the post-routing middleware still observes.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeAlias

from switchyard._internal.invoke import invoke
from switchyard.binding.bind import bind, bind_plan
from switchyard.binding.coerce import text_converter
from switchyard.binding.tags import is_bindable
from switchyard.context import request_var
from switchyard.errors import (
    BindError,
    ConfigurationError,
    FieldFormatError,
    HTTPError,
    NotFound,
    UnsupportedContentTypeError,
)
from switchyard.http.request import Request
from switchyard.http.response import Response
from switchyard.middleware.protocol import Middleware, Next, compose
from switchyard.routing.route import Route
from switchyard.routing.router import Router
from switchyard.server.errors import (
    bind_error_response,
    http_error_response,
    unsupported_content_type_response,
)
from switchyard.server.negotiation import negotiate

logger = logging.getLogger("switchyard.server")

Injector: TypeAlias = Callable[[Request], Awaitable[Any]]


class Pipeline:
    """Callable ``request -> response`` covering every tier.

    Exceptions other than the input errors above propagate to the caller,
    which owns the fault boundary.
    """

    __slots__ = ("_chains", "_entry", "_no_route", "_router")

    def __init__(
        self,
        router: Router,
        *,
        before: Sequence[Middleware] = (),
        after: Sequence[Middleware] = (),
        no_route: Response,
    ) -> None:
        self._router = router
        self._no_route = no_route
        self._chains: dict[tuple[str, str], Next] = {
            route.key: compose((*route.middleware, *after), _endpoint(route))
            for route in router.routes
        }
        self._entry = compose(before, self._dispatch)

    async def __call__(self, request: Request) -> Response:
        return await self._entry(request)

    async def _dispatch(self, request: Request) -> Response:
        try:
            match = self._router.match(request.method, request.path)
        except NotFound:
            logger.debug("404 %s %s: no route", request.method, request.path)
            return self._no_route

        request = request.with_path_params(match.path_params)
        request_var.set(request)
        return await self._chains[match.route.key](request)


def _endpoint(route: Route) -> Next:
    handler = route.handler
    injectors = _injectors(route)

    async def endpoint(request: Request) -> Response:
        try:
            kwargs = {name: await inject(request) for name, inject in injectors}
            result = await invoke(handler, **kwargs)
            return negotiate(result)
        except BindError as exc:
            return bind_error_response(exc, request)
        except UnsupportedContentTypeError as exc:
            return unsupported_content_type_response(exc, request)
        except HTTPError as exc:
            return http_error_response(exc, request)

    return endpoint


def _injectors(route: Route) -> list[tuple[str, Injector]]:
    """Resolve how each handler parameter is filled, once per route.

    Resolution order:
    1. ``request`` parameter (by name or ``Request`` annotation)
    2. The route's path parameter (by name, coerced to the annotation)
    3. A dataclass annotation (bound from the request with ``bind``)

    Parameters with a default are otherwise left alone; anything else
    raises ``ConfigurationError``.
    """
    sig = inspect.signature(route.handler, eval_str=True)
    injectors: list[tuple[str, Injector]] = []

    for name, param in sig.parameters.items():
        annotation = param.annotation
        if name == "request" or annotation is Request:
            injectors.append((name, _inject_request))
        elif name == route.param_name:
            injectors.append((name, _inject_path_param(name, annotation)))
        elif is_bindable(annotation):
            # Plan resolved here so declaration mistakes surface at startup
            injectors.append((name, _inject_bound(annotation)))
        elif param.default is inspect.Parameter.empty:
            msg = (
                f"Cannot inject parameter {name!r} of {route.handler.__qualname__} "
                f"for {route.method} {route.path!r}: expected 'request', the path "
                f"parameter {route.param_name!r}, or a dataclass annotation."
            )
            raise ConfigurationError(msg)

    return injectors


async def _inject_request(request: Request) -> Request:
    return request


def _inject_path_param(name: str, annotation: Any) -> Injector:
    convert = None
    if annotation is not inspect.Parameter.empty and annotation is not str:
        convert = text_converter(annotation)

    async def inject(request: Request) -> Any:
        raw = request.path_param(name)
        if convert is None or raw is None:
            return raw
        try:
            return convert(raw)
        except Exception as exc:
            kind = FieldFormatError(name, exc)
            raise BindError(kind) from kind

    return inject


def _inject_bound(cls: type) -> Injector:
    bind_plan(cls)

    async def inject(request: Request) -> Any:
        return await bind(request, cls)

    return inject
