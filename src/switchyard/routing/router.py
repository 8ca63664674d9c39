"""Route table with single trailing-parameter matching.

Routes are registered during setup and frozen when the app starts
serving. Lookups are two dictionary probes: first the parameterized
template formed from the request path, then the literal path.

A literal route and a parameterized sibling may coexist, but the
parameterized one wins: with ``/items/:id`` and ``/items/special`` both
registered, ``GET /items/special`` resolves to ``/items/:id`` with
``id="special"``. Avoid registering such pairs.
"""

from switchyard.errors import ConfigurationError, NotFound
from switchyard.routing.route import PARAM_MARKER, Route, RouteMatch


def parse_path(path: str) -> tuple[str, str | None]:
    """Split a registered path into its lookup template and parameter name.

    Examples::

        "/items"      -> ("/items", None)
        "/items/:id"  -> ("/items/:", "id")
        "/a/b/:slug"  -> ("/a/b/:", "slug")

    Raises ``ConfigurationError`` when the marker appears anywhere but at
    the start of the final segment, carries no name, or has no static
    segment in front of it.
    """
    if not path.startswith("/"):
        msg = f"Route path must start with '/': {path!r}"
        raise ConfigurationError(msg)

    if PARAM_MARKER not in path:
        return path, None

    head, _, last = path.rpartition("/")
    name = last[len(PARAM_MARKER) :]
    if (
        PARAM_MARKER in head
        or not last.startswith(PARAM_MARKER)
        or not name
        or PARAM_MARKER in name
    ):
        msg = (
            f"Invalid route path {path!r}: only one path parameter is supported "
            f"and it must be the final segment, written as '/{PARAM_MARKER}name'."
        )
        raise ConfigurationError(msg)
    if not head:
        msg = f"Invalid route path {path!r}: a path parameter needs a static prefix."
        raise ConfigurationError(msg)

    return f"{head}/{PARAM_MARKER}", name


class Router:
    """Route table keyed by ``(method, template)``.

    Usage::

        router = Router()
        router.add(Route("GET", "/items/:id", "/items/:", show, param_name="id"))
        router.compile()
        match = router.match("GET", "/items/42")
        match.path_params  # {"id": "42"}
    """

    __slots__ = ("_compiled", "_routes")

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], Route] = {}
        self._compiled = False

    def add(self, route: Route) -> None:
        """Register *route*.

        Raises ``ConfigurationError`` if a route with the same method and
        template already exists, so a clash surfaces at setup time.
        """
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)
        if route.key in self._routes:
            existing = self._routes[route.key]
            msg = (
                f"Route {route.method} {route.path!r} clashes with "
                f"{existing.method} {existing.path!r} (template {route.template!r})."
            )
            raise ConfigurationError(msg)
        self._routes[route.key] = route

    @property
    def routes(self) -> list[Route]:
        """All registered routes in registration order."""
        return list(self._routes.values())

    def compile(self) -> None:
        """Freeze the router. No more routes can be added."""
        self._compiled = True

    def match(self, method: str, path: str) -> RouteMatch:
        """Resolve *method* and *path* to a route.

        Raises ``NotFound`` if neither a parameterized template nor the
        literal path is registered for *method*.
        """
        segments = path.split("/")
        candidate = segments[-1]
        if len(segments) > 2 and candidate:
            template = path[: -len(candidate)] + PARAM_MARKER
            route = self._routes.get((method, template))
            if route is not None:
                assert route.param_name is not None
                return RouteMatch(route=route, path_params={route.param_name: candidate})

        route = self._routes.get((method, path))
        if route is not None:
            return RouteMatch(route=route)

        raise NotFound(f"No route matches {method} {path!r}")
