"""Route table: one optional trailing path parameter per route."""

from switchyard.routing.route import PARAM_MARKER, Route, RouteMatch
from switchyard.routing.router import Router, parse_path

__all__ = ["PARAM_MARKER", "Route", "RouteMatch", "Router", "parse_path"]
