"""Error responses for recovered request failures.

Input errors become 4xx JSON responses ``{"message": ...}`` and are
logged at debug level. Anything else is a fault: its traceback is logged
and the operator-configured fallback is sent, revealing nothing about
the failure to the client.
"""

import logging
from http import HTTPStatus

from switchyard.errors import BindError, HTTPError, UnsupportedContentTypeError
from switchyard.http.request import Request
from switchyard.http.response import Response, message_response

logger = logging.getLogger("switchyard.server")


def http_error_response(exc: HTTPError, request: Request) -> Response:
    """Response for an ``HTTPError`` raised by a handler or middleware."""
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)
    try:
        default = HTTPStatus(exc.status).phrase
    except ValueError:
        default = str(exc.status)
    response = message_response(exc.status, exc.detail or default)
    if exc.headers:
        response = response.with_headers(dict(exc.headers))
    return response


def bind_error_response(exc: BindError, request: Request) -> Response:
    """400 carrying the bind failure, which names the field or raw payload."""
    logger.debug("400 %s %s: %s", request.method, request.path, exc)
    return message_response(400, str(exc))


def unsupported_content_type_response(
    exc: UnsupportedContentTypeError, request: Request
) -> Response:
    logger.debug("415 %s %s: %s", request.method, request.path, exc)
    return message_response(415, str(exc))


def internal_error_response(exc: Exception, request: Request, fallback: Response) -> Response:
    """Log *exc* with its traceback and return the configured *fallback*."""
    logger.error(
        "500 %s %s: %s", request.method, request.path, type(exc).__name__, exc_info=exc
    )
    return fallback
