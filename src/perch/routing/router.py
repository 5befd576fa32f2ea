"""Compiled router with trie-based path matching.

Routes are registered during setup and compiled into an immutable
lookup structure when the app freezes.
"""

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from perch._internal.types import Endpoint
from perch.errors import ConfigurationError, InvalidRouteError, MethodNotAllowed, NotFound
from perch.routing.params import CONVERTERS
from perch.routing.route import PathSegment, Route, RouteMatch

_FLASK_PARAM = re.compile(r"<[^>]+>")


def parse_path(path: str) -> list[PathSegment]:
    """Parse a route path string into segments.

    Examples::

        "/users"          -> [PathSegment("users")]
        "/users/{id}"     -> [PathSegment("users"), PathSegment("{id}", is_param=True, ...)]
        "/users/{id:int}" -> [PathSegment("{id:int}", is_param=True, param_type="int")]
        "/files/{path:path}" -> [PathSegment("{path:path}", is_param=True, param_type="path")]

    Raises ``InvalidRouteError`` for ``<param>`` placeholders, unknown
    converters, or a ``path`` converter that is not the last segment.
    """
    if _FLASK_PARAM.search(path):
        msg = (
            f"Route {path!r} uses <param> placeholders. "
            "Perch expects {param} or {param:type} segments."
        )
        raise InvalidRouteError(msg)

    segments: list[PathSegment] = []
    parts = [part for part in path.strip("/").split("/") if part]
    for index, part in enumerate(parts):
        if not (part.startswith("{") and part.endswith("}")):
            segments.append(PathSegment(value=part))
            continue

        inner = part[1:-1]
        param_name, _, param_type = inner.partition(":")
        param_type = param_type or "str"
        if not param_name:
            msg = f"Route {path!r} has an unnamed parameter segment {part!r}."
            raise InvalidRouteError(msg)
        if param_type not in CONVERTERS:
            msg = f"Route {path!r} uses unknown converter {param_type!r}."
            raise InvalidRouteError(msg)
        if param_type == "path" and index != len(parts) - 1:
            msg = f"Route {path!r}: a {{name:path}} segment must be the last one."
            raise InvalidRouteError(msg)
        segments.append(
            PathSegment(
                value=part,
                is_param=True,
                param_name=param_name,
                param_type=param_type,
            )
        )
    return segments


class _TrieNode:
    """A node in the route trie. Mutable during compilation only."""

    __slots__ = ("catch_all", "children", "param_child", "routes_by_method")

    def __init__(self) -> None:
        # Static segment children: "users" -> node
        self.children: dict[str, _TrieNode] = {}
        # Single parameter child (only one param pattern per level)
        self.param_child: _ParamEdge | None = None
        # Catch-all edge (path converter)
        self.catch_all: _CatchAllEdge | None = None
        # Routes at this node, keyed by HTTP method, in registration order
        self.routes_by_method: dict[str, Route] = {}


@dataclass(slots=True)
class _ParamEdge:
    """A parameter edge in the trie."""

    param_name: str
    param_type: str
    regex: re.Pattern[str]
    node: _TrieNode


@dataclass(slots=True)
class _CatchAllEdge:
    """A catch-all (path) edge. Consumes the remaining path."""

    param_name: str
    routes_by_method: dict[str, Route] = field(default_factory=dict)


class Router:
    """Compiled router with trie-based path matching.

    Usage::

        router = Router()
        router.register("GET", "/users/{id:int}", endpoint, name="user")
        router.compile()
        match = router.match("GET", "/users/42")
        router.url_for("user", id=42)  # "/users/42"

    Static segments take precedence over parameters, parameters over
    catch-alls, but only among patterns that serve the request method:
    ``POST /users/me`` reaches ``POST /users/{id}`` even when
    ``GET /users/me`` exists. A ``HEAD`` request with no ``HEAD`` route
    falls back to the ``GET`` route. Registering the same method twice
    for one pattern is a configuration error, so the outcome never
    depends on registration order. Allowed-method sets span every
    pattern matching the path, in registration order.
    """

    __slots__ = ("_compiled", "_named", "_root", "_routes", "_segments")

    def __init__(self) -> None:
        self._root = _TrieNode()
        self._compiled = False
        self._routes: list[Route] = []
        self._named: dict[str, Route] = {}
        self._segments: dict[int, list[PathSegment]] = {}

    def register(
        self,
        method: str,
        path: str,
        endpoint: Endpoint,
        *,
        name: str | None = None,
    ) -> Route:
        """Register *endpoint* for one ``(method, path)`` pair."""
        route = Route(path=path, endpoint=endpoint, methods=(method.upper(),), name=name)
        self.add(route)
        return route

    def add(self, route: Route) -> None:
        """Add a route to the router. Must be called before compile()."""
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)
        if route.name and route.name in self._named:
            msg = f"Route name {route.name!r} is already used by {self._named[route.name].path!r}."
            raise ConfigurationError(msg)

        segments = parse_path(route.path)
        node = self._root
        table: dict[str, Route] | None = None

        for seg in segments:
            if seg.is_param and seg.param_type == "path":
                if node.catch_all is None:
                    node.catch_all = _CatchAllEdge(param_name=seg.param_name or "path")
                self._check_param(route, node.catch_all.param_name, seg)
                table = node.catch_all.routes_by_method
                break

            if seg.is_param:
                if node.param_child is None:
                    node.param_child = _ParamEdge(
                        param_name=seg.param_name or "",
                        param_type=seg.param_type,
                        regex=re.compile(f"^{CONVERTERS[seg.param_type]}$"),
                        node=_TrieNode(),
                    )
                else:
                    self._check_param(route, node.param_child.param_name, seg)
                    if node.param_child.param_type != seg.param_type:
                        msg = (
                            f"Route {route.path!r}: {seg.value} conflicts with "
                            f"{{{node.param_child.param_name}:{node.param_child.param_type}}} "
                            "registered at the same position."
                        )
                        raise InvalidRouteError(msg)
                node = node.param_child.node
            else:
                node = node.children.setdefault(seg.value, _TrieNode())

        if table is None:
            table = node.routes_by_method

        for method in route.methods:
            if method in table:
                msg = f"{method} {route.path} is already registered (as {table[method].path!r})."
                raise InvalidRouteError(msg)
            table[method] = route

        self._routes.append(route)
        self._segments[id(route)] = segments
        if route.name:
            self._named[route.name] = route

    @staticmethod
    def _check_param(route: Route, existing: str, seg: PathSegment) -> None:
        if seg.param_name != existing:
            msg = (
                f"Route {route.path!r}: parameter {seg.param_name!r} conflicts with "
                f"{existing!r} registered at the same position."
            )
            raise InvalidRouteError(msg)

    @property
    def routes(self) -> list[Route]:
        """All registered routes, in registration order."""
        return list(self._routes)

    def compile(self) -> None:
        """Freeze the router. No more routes can be added."""
        self._compiled = True

    def url_for(self, name: str, params: Mapping[str, Any] | None = None) -> str:
        """Rebuild the path of the route registered as *name*.

        Raises ``KeyError`` for an unknown name and ``ValueError`` when a
        path parameter is missing from *params*.
        """
        route = self._named[name]
        params = params or {}
        parts: list[str] = []
        for seg in self._segments[id(route)]:
            if not seg.is_param:
                parts.append(seg.value)
                continue
            if seg.param_name not in params:
                msg = f"Route {name!r} needs a value for {seg.param_name!r}."
                raise ValueError(msg)
            parts.append(str(params[seg.param_name]))
        return "/" + "/".join(parts)

    def match(self, method: str, path: str) -> RouteMatch:
        """Match a request path and method against compiled routes.

        Returns a ``RouteMatch`` for the highest-precedence pattern that
        serves *method*.
        Raises ``NotFound`` if no route matches the path.
        Raises ``MethodNotAllowed`` if patterns match the path but none
        serves the method.
        """
        parts = [p for p in path.strip("/").split("/") if p]
        candidates = list(self._match_node(self._root, parts, 0, {}))

        if not candidates:
            raise NotFound(f"No route matches {method} {path!r}")

        wanted = (method, "GET") if method == "HEAD" else (method,)
        for candidate_method in wanted:
            for table, params in candidates:
                route = table.get(candidate_method)
                if route is not None:
                    return RouteMatch(route=route, path_params=params)

        raise MethodNotAllowed(self._allowed_methods(candidates))

    def _allowed_methods(
        self,
        candidates: list[tuple[dict[str, Route], dict[str, str]]],
    ) -> tuple[str, ...]:
        """Methods of every candidate pattern, in registration order, no duplicates."""
        matched = {id(route) for table, _ in candidates for route in table.values()}
        methods = (
            method
            for route in self._routes
            if id(route) in matched
            for method in route.methods
        )
        return tuple(dict.fromkeys(methods))

    def _match_node(
        self,
        node: _TrieNode,
        parts: list[str],
        index: int,
        params: dict[str, str],
    ) -> Iterator[tuple[dict[str, Route], dict[str, str]]]:
        """Yield every route table matching the path, highest precedence first."""
        if index == len(parts):
            if node.routes_by_method:
                yield node.routes_by_method, params
            return

        part = parts[index]

        # 1. Static child first (exact match)
        if part in node.children:
            yield from self._match_node(node.children[part], parts, index + 1, params)

        # 2. Parameter child
        edge = node.param_child
        if edge is not None and edge.regex.match(part):
            new_params = {**params, edge.param_name: part}
            yield from self._match_node(edge.node, parts, index + 1, new_params)

        # 3. Catch-all
        if node.catch_all is not None and node.catch_all.routes_by_method:
            remaining = "/".join(parts[index:])
            yield node.catch_all.routes_by_method, {**params, node.catch_all.param_name: remaining}
