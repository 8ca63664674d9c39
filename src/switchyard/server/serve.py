"""Serve an App through pounce.

pounce is an optional dependency (``pip install switchyard[server]``).
It binds the socket, runs worker processes, and on SIGINT/SIGTERM stops
accepting connections and drains in-flight requests before exiting.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from switchyard.config import AppConfig

logger = logging.getLogger("switchyard.server")


def run_server(app: object, config: AppConfig) -> None:
    """Start pounce with the live ASGI *app*.

    With ``config.debug`` the server runs a single worker with reload;
    otherwise ``config.workers`` processes (0 = one per CPU).

    Raises:
        ModuleNotFoundError: pounce is not installed.
    """
    try:
        from pounce.config import ServerConfig
        from pounce.server import Server
    except ModuleNotFoundError as exc:
        msg = "App.run() needs the pounce server: pip install 'switchyard[server]'"
        raise ModuleNotFoundError(msg, name=exc.name) from exc

    if config.debug:
        server_config = ServerConfig(
            host=config.host,
            port=config.port,
            workers=1,
            reload=True,
            log_level=config.log_level,
        )
    else:
        server_config = ServerConfig(
            host=config.host,
            port=config.port,
            workers=config.workers,
            log_format=config.log_format,
            log_level=config.log_level,
            max_connections=config.max_connections,
            keep_alive_timeout=config.keep_alive_timeout,
            request_timeout=config.request_timeout,
        )

    logger.info(
        "Serving on http://%s:%d (%s)",
        config.host,
        config.port,
        "debug, reload" if config.debug else f"workers={config.workers or 'auto'}",
    )
    Server(server_config, app).run()
