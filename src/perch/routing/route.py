"""Route declarations and router records.

``RouteDescriptor`` is what a handler class declares. ``Route`` is what
the router stores once the Dispatcher has bound a descriptor to an
endpoint. ``RouteMatch`` is the result of a successful lookup.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from perch._internal.types import Endpoint
from perch.errors import InvalidRouteError


class HTTPMethod(StrEnum):
    """HTTP methods a route may be declared for."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"
    HEAD = "HEAD"


@dataclass(frozen=True, slots=True)
class RouteDescriptor:
    """One route declared by a handler class.

    Usage::

        RouteDescriptor("GET", "/users/{id:int}", "show", name="user")
        RouteDescriptor("GET", "/me", "show", arguments={"id": "me"})

    ``method`` is normalized to uppercase. ``arguments`` are static extra
    arguments merged into the request's parameter bag; they win over path
    parameters with the same key.
    """

    method: str
    url: str
    handler_method: str
    arguments: Mapping[str, Any] = field(default_factory=dict)
    name: str | None = None

    def __post_init__(self) -> None:
        if not self.method or not isinstance(self.method, str):
            msg = f"Route for {self.url!r} has no HTTP method."
            raise InvalidRouteError(msg)
        method = self.method.strip().upper()
        if method not in HTTPMethod.__members__:
            msg = f"Route {self.url!r} uses unsupported HTTP method {self.method!r}."
            raise InvalidRouteError(msg)
        if not self.url or not isinstance(self.url, str):
            msg = f"{method} route has an empty URL pattern."
            raise InvalidRouteError(msg)
        if not self.handler_method:
            msg = f"{method} {self.url} does not name a handler method."
            raise InvalidRouteError(msg)
        object.__setattr__(self, "method", method)
        object.__setattr__(self, "arguments", MappingProxyType(dict(self.arguments)))

    def __hash__(self) -> int:
        return hash((self.method, self.url, self.handler_method, self.name))


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route path.

    Static:  ``/users``  (is_param=False)
    Param:   ``/{id}``   (is_param=True, param_name="id")
    Typed:   ``/{id:int}`` (is_param=True, param_name="id", param_type="int")
    """

    value: str
    is_param: bool = False
    param_name: str | None = None
    param_type: str = "str"


@dataclass(frozen=True, slots=True)
class Route:
    """A route registered with the router.

    Created by the Dispatcher at freeze time. ``methods`` keeps the
    declaration order.
    """

    path: str
    endpoint: Endpoint
    methods: tuple[str, ...]
    name: str | None = None


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    path_params: dict[str, str]
