"""Route and RouteMatch frozen dataclasses."""

from dataclasses import dataclass

from switchyard._internal.types import Handler
from switchyard.middleware.protocol import Middleware

# Marks the parameter segment in a registered path (``/items/:id``)
# and stands in for it in the normalized template (``/items/:``).
PARAM_MARKER = ":"


@dataclass(frozen=True, slots=True)
class Route:
    """A registered route.

    ``path`` is what the developer wrote, ``template`` the lookup key
    with the parameter segment replaced by ``PARAM_MARKER``.
    """

    method: str
    path: str
    template: str
    handler: Handler
    middleware: tuple[Middleware, ...] = ()
    param_name: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.method, self.template)


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route lookup.

    ``path_params`` is ``None`` for routes without a parameter.
    """

    route: Route
    path_params: dict[str, str] | None = None
