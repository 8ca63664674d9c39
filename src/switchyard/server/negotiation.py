"""Content negotiation: maps handler return values to Response objects.

isinstance-based dispatch, no magic, fully predictable.
"""

from typing import Any

from switchyard.http.response import OCTET_STREAM, PLAIN_TEXT, Response, respond, respond_json


def negotiate(value: Any) -> Response:
    """Convert a route handler's return value to a Response.

    Dispatch order:

    1. ``Response``           -> pass through
    2. ``None``               -> 204, empty body
    3. ``str``                -> 200, text/plain
    4. ``bytes``              -> 200, application/octet-stream
    5. ``dict`` / ``list``    -> 200, application/json
    6. ``(value, int)``       -> negotiate value, override status
    7. ``(value, int, dict)`` -> negotiate value, override status + headers

    Raises ``TypeError`` for anything else, which surfaces as the
    internal-error response.
    """
    match value:
        case Response():
            return value
        case None:
            return Response(status=204)
        case str():
            return respond(PLAIN_TEXT, 200, value)
        case bytes():
            return respond(OCTET_STREAM, 200, value)
        case dict() | list():
            return respond_json(200, value)
        case (inner, int() as status):
            return negotiate(inner).with_status(status)
        case (inner, int() as status, dict() as headers):
            return negotiate(inner).with_status(status).with_headers(headers)
        case _:
            msg = (
                f"Cannot convert {type(value).__name__} to a response. "
                f"Return Response, str, bytes, dict, list, None, or (value, status)."
            )
            raise TypeError(msg)
