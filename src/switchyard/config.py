"""Application configuration.

AppConfig is a frozen dataclass: immutable after creation, no string-key
dict lookups. ``App`` swaps in a modified copy with ``dataclasses.replace``
while it is still being set up.
"""

import json
from dataclasses import dataclass

from switchyard.http.response import JSON

NO_ROUTE_BODY = json.dumps({"message": "no method"}).encode()
INTERNAL_ERROR_BODY = json.dumps({"message": "internal server error"}).encode()


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have defaults. Override what you need::

        config = AppConfig(debug=True, port=3000)
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False

    # Production (0 = auto-detect from CPU count)
    workers: int = 0
    log_format: str = "json"
    log_level: str = "info"
    max_connections: int = 1000
    keep_alive_timeout: float = 5.0
    request_timeout: float = 30.0

    # Response for requests that match no route (status 404)
    no_route_content_type: str = JSON
    no_route_body: bytes = NO_ROUTE_BODY

    # Response for requests whose handling raised (status 500)
    internal_error_content_type: str = JSON
    internal_error_body: bytes = INTERNAL_ERROR_BODY
