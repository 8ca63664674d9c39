"""Middleware protocol, Next type alias, and chain composition.

A middleware is any callable matching::

    async def my_mw(request: Request, next: Next) -> Response: ...

No base class required. The framework checks the shape, not the lineage.
A middleware that returns without calling ``next`` short-circuits the
chain: no later middleware and no handler run.
"""

from collections.abc import Awaitable, Callable, Sequence
from typing import Protocol, TypeAlias

from switchyard.http.request import Request
from switchyard.http.response import Response

# The next stage in the chain
Next: TypeAlias = Callable[[Request], Awaitable[Response]]


class Middleware(Protocol):
    """Protocol for switchyard middleware.

    Accepts both functions and callable objects::

        # Function middleware
        async def timing(request: Request, next: Next) -> Response:
            start = time.monotonic()
            response = await next(request)
            elapsed = time.monotonic() - start
            return response.with_header("X-Time", f"{elapsed:.3f}")

        # Class middleware
        class RequireJSON:
            async def __call__(self, request: Request, next: Next) -> Response:
                ...
    """

    async def __call__(self, request: Request, next: Next) -> Response: ...


def compose(middleware: Sequence[Middleware], endpoint: Next) -> Next:
    """Wrap *endpoint* so that *middleware* runs first, in order.

    ``compose([a, b], h)`` yields a callable where ``a`` calls into ``b``
    which calls into ``h``. Composition happens once; the returned callable
    is reused for every request.
    """
    handler = endpoint
    for mw in reversed(middleware):
        handler = _link(mw, handler)
    return handler


def _link(mw: Middleware, next_stage: Next) -> Next:
    async def call(request: Request) -> Response:
        return await mw(request, next_stage)

    return call
