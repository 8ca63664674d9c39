"""Request-scoped context via ContextVar.

``request_var`` holds the request being served, including the path
parameter table once routing has matched. It is set by the ASGI
handler before dispatch and reset afterwards, so code deep inside a
handler can reach the request without it being passed down::

    from switchyard.context import get_request

    def audit(action: str) -> None:
        request = get_request()
        log.info("%s %s by %s", action, request.path, request.client)

Thread safety:
    ``ContextVar`` is task-local under asyncio. Sync handlers run in a
    worker thread through ``anyio.to_thread``, which copies the context,
    so the request is visible there too.
"""

from contextvars import ContextVar

from switchyard.http.request import Request

request_var: ContextVar[Request] = ContextVar("switchyard_request")
"""The current request. Set by the ASGI handler before dispatch."""


def get_request() -> Request:
    """Return the current request.

    Raises ``LookupError`` if called outside a request context.
    """
    return request_var.get()
