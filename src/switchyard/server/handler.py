"""ASGI handler: translates ASGI scope/messages to switchyard types.

The only component that touches raw ASGI directly. Converts the scope
to a typed Request, runs the pipeline, and sends the one Response back
through ASGI send().

This is the fault boundary. Whatever the pipeline raises, from any
middleware tier or the handler, is caught here, logged with its
traceback, and replaced by the configured internal-error response.
There is no other recovery point.
"""

import logging
from contextvars import Token

from switchyard._internal.asgi import Receive, Scope, Send
from switchyard.context import request_var
from switchyard.errors import HTTPError
from switchyard.http.request import Request
from switchyard.http.response import Response
from switchyard.server.errors import http_error_response, internal_error_response
from switchyard.server.pipeline import Pipeline
from switchyard.server.sender import send_response

logger = logging.getLogger("switchyard.server")


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    pipeline: Pipeline,
    internal_error: Response,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)

    # Set request context var (reset after dispatch)
    token: Token[Request] = request_var.set(request)
    try:
        response = await pipeline(request)
    except HTTPError as exc:
        # Raised by middleware outside the endpoint stage
        response = http_error_response(exc, request)
    except Exception as exc:
        response = internal_error_response(exc, request, internal_error)
    finally:
        request_var.reset(token)

    await send_response(response, send)
