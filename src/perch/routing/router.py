"""Exact-path router.

Static files are matched by middleware, so the router only needs to
map literal paths to handlers. Trailing slashes are significant.
"""

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from perch.errors import ConfigurationError, MethodNotAllowed, NotFound


@dataclass(frozen=True, slots=True)
class Route:
    """A frozen route definition."""

    path: str
    handler: Callable[..., Any]
    methods: frozenset[str]

    @property
    def takes_request(self) -> bool:
        """True if the handler accepts the request as its argument."""
        return bool(inspect.signature(self.handler).parameters)


class Router:
    """Path -> method -> Route lookup table."""

    __slots__ = ("_routes",)

    def __init__(self) -> None:
        self._routes: dict[str, dict[str, Route]] = {}

    def add(self, route: Route) -> None:
        by_method = self._routes.setdefault(route.path, {})
        for method in route.methods:
            if method in by_method:
                msg = f"Duplicate route: {method} {route.path!r}"
                raise ConfigurationError(msg)
            by_method[method] = route

    def match(self, method: str, path: str) -> Route:
        """Return the route for *method* and *path*.

        ``HEAD`` falls back to the ``GET`` handler.

        Raises:
            NotFound: No route has this path.
            MethodNotAllowed: The path exists but not for *method*.
        """
        by_method = self._routes.get(path)
        if not by_method:
            raise NotFound(f"No route matches {method} {path!r}")
        if method in by_method:
            return by_method[method]
        if method == "HEAD" and "GET" in by_method:
            return by_method["GET"]
        raise MethodNotAllowed(frozenset(by_method))
