"""Middleware protocol and composition.

A middleware is any ``async def mw(request, next) -> Response``.
Three tiers run around every request, in registration order:

1. pre-routing middleware (``App.add_middleware``) — sees every request,
   including ones that match no route;
2. per-route middleware (passed to ``App.get`` / ``App.post``);
3. post-routing middleware (``App.add_after_middleware``) — only runs
   once a route has matched.
"""

from switchyard.middleware.protocol import Middleware, Next, compose

__all__ = ["Middleware", "Next", "compose"]
