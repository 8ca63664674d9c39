"""Switchyard application class.

Mutable during setup (routes, middleware, response overrides, hooks).
Frozen at runtime when app.run() or __call__() is first invoked.
"""

import dataclasses
import logging
import threading
from collections.abc import Callable, Sequence

from switchyard._internal.asgi import Receive, Scope, Send
from switchyard._internal.invoke import run_hook
from switchyard._internal.types import Handler, Hook
from switchyard.config import AppConfig
from switchyard.http.response import Response
from switchyard.middleware.protocol import Middleware
from switchyard.routing.route import Route
from switchyard.routing.router import Router, parse_path
from switchyard.server.handler import handle_request
from switchyard.server.pipeline import Pipeline

logger = logging.getLogger("switchyard.app")


class App:
    """The switchyard application.

    Usage::

        app = App()

        async def show(id: int) -> dict:
            return {"id": id}

        app.get("/items/:id", show)
        app.add_middleware(timing)
        app.run()

    Routes go straight into the route table, so a clashing registration
    raises ``ConfigurationError`` on the spot. Middleware runs in three
    tiers: pre-routing (``add_middleware``), per-route (passed with the
    route), and post-routing (``add_after_middleware``).

    Thread safety:
        The setup phase is single-threaded (registration at import time).
        The freeze transition uses a Lock + double-check to ensure exactly
        one thread compiles the pipeline.
    """

    __slots__ = (
        "_after_middleware",
        "_before_middleware",
        "_freeze_lock",
        "_frozen",
        "_internal_error",
        "_pipeline",
        "_router",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
    )

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self._router = Router()
        self._before_middleware: list[Middleware] = []
        self._after_middleware: list[Middleware] = []
        self._startup_hooks: list[Hook] = []
        self._shutdown_hooks: list[Hook] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._pipeline: Pipeline | None = None
        self._internal_error: Response | None = None

    # -- Route registration --

    def add_route(
        self, method: str, path: str, handler: Handler, *middleware: Middleware
    ) -> Handler:
        """Register *handler* for *method* and *path*.

        *middleware* runs for this route only, before the post-routing
        tier. Returns *handler* unchanged.

        Raises:
            ConfigurationError: The path is malformed, or another route
                already has the same method and path template.
        """
        self._check_not_frozen()
        template, param_name = parse_path(path)
        self._router.add(
            Route(
                method=method.upper(),
                path=path,
                template=template,
                handler=handler,
                middleware=tuple(middleware),
                param_name=param_name,
            )
        )
        return handler

    def get(self, path: str, handler: Handler, *middleware: Middleware) -> Handler:
        """Register a GET route."""
        return self.add_route("GET", path, handler, *middleware)

    def post(self, path: str, handler: Handler, *middleware: Middleware) -> Handler:
        """Register a POST route."""
        return self.add_route("POST", path, handler, *middleware)

    def route(
        self,
        path: str,
        *,
        methods: Sequence[str] | None = None,
        middleware: Sequence[Middleware] = (),
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator.

        Args:
            path: URL path. ``/items/:id`` declares a trailing parameter.
            methods: HTTP methods. Defaults to ``["GET"]``.
            middleware: Per-route middleware, in order.
        """

        def decorator(func: Handler) -> Handler:
            for method in methods or ["GET"]:
                self.add_route(method, path, func, *middleware)
            return func

        return decorator

    # -- Middleware --

    def add_middleware(self, middleware: Middleware) -> None:
        """Add a pre-routing middleware. It sees every request."""
        self._check_not_frozen()
        self._before_middleware.append(middleware)

    def add_after_middleware(self, middleware: Middleware) -> None:
        """Add a post-routing middleware.

        It runs after routing and the route's own middleware, only for
        requests that matched a route.
        """
        self._check_not_frozen()
        self._after_middleware.append(middleware)

    # -- Response overrides --

    def set_no_route_response(self, content_type: str, body: str | bytes) -> None:
        """Replace the 404 response sent when no route matches."""
        self._check_not_frozen()
        self.config = dataclasses.replace(
            self.config, no_route_content_type=content_type, no_route_body=_as_bytes(body)
        )

    def set_internal_error_response(self, content_type: str, body: str | bytes) -> None:
        """Replace the 500 response sent when handling a request raises."""
        self._check_not_frozen()
        self.config = dataclasses.replace(
            self.config,
            internal_error_content_type=content_type,
            internal_error_body=_as_bytes(body),
        )

    # -- Lifecycle hooks --

    def on_startup(self, func: Hook) -> Hook:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        before the server begins accepting HTTP requests.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Hook) -> Hook:
        """Register an async or sync shutdown hook via decorator.

        Hooks run in registration order during ASGI lifespan shutdown,
        after the server stops accepting new requests.
        """
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Introspection --

    @property
    def routes(self) -> list[Route]:
        """Registered routes in registration order."""
        return self._router.routes

    # -- Serving --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Freeze the app and serve it through pounce.

        ``config.debug`` selects a single reloading worker; otherwise
        ``config.workers`` processes are started. Blocks until the server
        is stopped with SIGINT or SIGTERM.
        """
        self._ensure_frozen()

        from switchyard.server.serve import run_server

        config = dataclasses.replace(
            self.config, host=host or self.config.host, port=port or self.config.port
        )
        run_server(self, config)

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        self._ensure_frozen()

        assert self._pipeline is not None
        assert self._internal_error is not None

        await handle_request(
            scope,
            receive,
            send,
            pipeline=self._pipeline,
            internal_error=self._internal_error,
        )

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup (before the first HTTP request), then
        runs registered startup/shutdown hooks and signals completion
        back to the server.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self._ensure_frozen()
                    for hook in self._startup_hooks:
                        await run_hook(hook)
                except Exception as exc:
                    logger.exception("Startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                logger.info("Started with %d routes", len(self._router.routes))
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    await run_hook(hook)
                logger.info("Shut down")
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        config = self.config
        self._pipeline = Pipeline(
            self._router,
            before=tuple(self._before_middleware),
            after=tuple(self._after_middleware),
            no_route=Response(
                body=config.no_route_body, status=404, content_type=config.no_route_content_type
            ),
        )
        self._internal_error = Response(
            body=config.internal_error_body,
            status=500,
            content_type=config.internal_error_content_type,
        )
        self._router.compile()
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes and middleware before calling app.run()."
            )
            raise RuntimeError(msg)


def _as_bytes(body: str | bytes) -> bytes:
    return body.encode("utf-8") if isinstance(body, str) else body
