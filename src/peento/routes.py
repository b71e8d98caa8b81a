"""Routes contributed by plugins, added to the FastAPI app at startup."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from fastapi import FastAPI


@dataclass
class Route:
    """One request handler registered by a plugin.

    Attributes:
        methods: Upper-case HTTP methods (e.g. ``["GET"]``).
        path: FastAPI path template (``/post/{post_id}``).
        endpoint: The handler; FastAPI dependencies work as usual.
        plugin: Name of the plugin that registered the route.
        options: Extra keyword arguments for ``FastAPI.add_api_route``.
    """

    methods: list[str]
    path: str
    endpoint: Callable[..., Any]
    plugin: str = ""
    options: dict[str, Any] = field(default_factory=dict)


_PARAM_RE = re.compile(r"\{[^}]*\}")


def route_sort_key(path: str) -> list[int]:
    """Rank each path segment: literal 0, parameter 1, catch-all ``:path`` 2.

    Sorting by this key puts ``/post/new`` ahead of ``/post/{post_id}`` and
    both ahead of ``/post/{rest:path}``. Python's sort is stable, so routes
    of equal rank keep their registration order.
    """
    ranks = []
    for segment in path.strip("/").split("/"):
        params = _PARAM_RE.findall(segment)
        if not params:
            ranks.append(0)
        elif any(p.endswith(":path}") for p in params):
            ranks.append(2)
        else:
            ranks.append(1)
    return ranks


class RouteTable:
    """Routes kept in registration order, installed most specific first."""

    def __init__(self) -> None:
        self._routes: list[Route] = []

    def add(self, route: Route) -> Route:
        self._routes.append(route)
        return route

    def install(self, app: FastAPI) -> int:
        """Add every route to *app*, most specific paths first; return how many."""
        for route in sorted(self._routes, key=lambda r: route_sort_key(r.path)):
            app.add_api_route(
                route.path,
                route.endpoint,
                methods=route.methods,
                **route.options,
            )
        return len(self._routes)

    def __iter__(self) -> Iterator[Route]:
        return iter(list(self._routes))

    def __len__(self) -> int:
        return len(self._routes)
