"""Handler base class and route declaration decorator.

A handler is a class that declares its routes through ``get_routes()``
and receives every request for them through ``on_request()``. Perch
creates one instance per handler class and shares it across requests,
so handler instances must not keep per-request state.

Usage::

    class Users(Handler):
        @route("GET", "/users/{id:int}", name="user")
        @route("GET", "/me", arguments={"id": "me"})
        async def show(self, request, response, params):
            return response.with_json({"id": params.id})
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from perch._internal.invoke import invoke
from perch.config import AppConfig
from perch.routing.route import RouteDescriptor

if TYPE_CHECKING:
    from perch.dispatch import ParameterBag
    from perch.http.request import Request
    from perch.http.response import Response

_ROUTES_ATTR = "__perch_routes__"


@dataclass(frozen=True, slots=True)
class HandlerContext:
    """Read-only state handed to every handler constructor.

    ``services`` holds the values registered with ``App.provide()``.
    ``url_for`` rebuilds the URL of a named route, base path included.
    """

    config: AppConfig
    url_for: Callable[..., str]
    services: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


def route(
    method: str,
    url: str,
    *,
    name: str | None = None,
    arguments: Mapping[str, Any] | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Declare a route for the decorated handler method.

    Stack several decorators to serve one method under several routes.
    Routes are reported top to bottom, in source order.
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        descriptor = RouteDescriptor(
            method, url, func.__name__, arguments=arguments or {}, name=name
        )
        declared = getattr(func, _ROUTES_ATTR, ())
        # decorators apply bottom-up
        setattr(func, _ROUTES_ATTR, (descriptor, *declared))
        return func

    return decorator


class Handler:
    """Base class for route handlers.

    Subclasses declare routes with ``@route`` or override ``get_routes()``.
    Override ``on_request()`` to wrap every call to a route method, e.g.
    for authentication or response post-processing.
    """

    def __init__(self, context: HandlerContext) -> None:
        self.context = context

    @classmethod
    def get_routes(cls) -> Sequence[RouteDescriptor]:
        """Routes declared with ``@route`` on this class and its bases.

        Base class routes come first. A method overridden in a subclass
        keeps its base position but uses the subclass declarations; one
        overridden without ``@route`` drops the base routes.
        """
        by_method: dict[str, tuple[RouteDescriptor, ...]] = {}
        for klass in reversed(cls.__mro__):
            for attr_name, attr in vars(klass).items():
                declared = getattr(attr, _ROUTES_ATTR, None)
                if declared is not None:
                    by_method[attr_name] = declared
                elif attr_name in by_method:
                    del by_method[attr_name]
        return [descriptor for declared in by_method.values() for descriptor in declared]

    async def on_request(
        self,
        request: Request,
        response: Response,
        params: ParameterBag,
        target: Callable[..., Any],
    ) -> Any:
        """Call the route method. Sync and async methods are both accepted."""
        return await invoke(target, request, response, params)
