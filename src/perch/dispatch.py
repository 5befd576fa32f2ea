"""Dispatcher: binds declared routes to router endpoints.

For every ``(handler_id, descriptor)`` pair in a ``HandlerRegistry`` the
Dispatcher registers one endpoint with the router, in registration
order. At request time the endpoint merges the router's path
parameters with the descriptor's static arguments into a
``ParameterBag`` and hands the request to the handler instance's
``on_request``. It translates no errors: whatever the handler raises
reaches the request pipeline unchanged.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Iterator, Mapping
from typing import Any

from perch._internal.invoke import invoke
from perch._internal.types import Endpoint
from perch.errors import HandlerMethodNotCallableError
from perch.handlers.base import HandlerContext
from perch.handlers.registry import HandlerRegistry
from perch.http.request import Request
from perch.http.response import Response
from perch.routing.route import Route, RouteDescriptor
from perch.routing.router import Router

logger = logging.getLogger("perch.app")


def _pairs(mapping: Mapping[str, Any]) -> Iterator[tuple[str, Any]]:
    # item access only, so a bag holding a "keys" or "items" entry still works
    for key in mapping:
        yield key, mapping[key]


class ParameterBag(Mapping[str, Any]):
    """Per-request route parameters, readable as attributes or keys.

    ``params.id`` and ``params["id"]`` are the same value, for every
    parameter name. A parameter named like a mapping method (``items``,
    ``get``, ``keys``, ``to_dict`` ...) shadows that method on the
    instance; the methods stay reachable through the class, e.g.
    ``ParameterBag.to_dict(params)``. Missing attributes raise
    ``AttributeError``, missing keys ``KeyError``.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        object.__setattr__(self, "_data", dict(_pairs(data or {})))

    def __getattribute__(self, name: str) -> Any:
        if not name.startswith("_"):
            data = object.__getattribute__(self, "_data")
            if name in data:
                return data[name]
        return object.__getattribute__(self, name)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        msg = f"No route parameter named {name!r}"
        raise AttributeError(msg)

    def __setattr__(self, name: str, value: Any) -> None:
        msg = "ParameterBag is read-only"
        raise AttributeError(msg)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Mapping):
            return self._data == dict(_pairs(other))
        return NotImplemented

    def __repr__(self) -> str:
        return f"ParameterBag({self._data!r})"

    def to_dict(self) -> dict[str, Any]:
        """Plain dict copy, nested bags included."""
        return {
            key: ParameterBag.to_dict(value) if isinstance(value, ParameterBag) else value
            for key, value in self._data.items()
        }


def _convert(value: Any) -> Any:
    if isinstance(value, Mapping):
        return ParameterBag({key: _convert(item) for key, item in _pairs(value)})
    if isinstance(value, (list, tuple)):
        return [_convert(item) for item in value]
    return value


def to_parameter_bag(
    path_params: Mapping[str, Any],
    arguments: Mapping[str, Any] | None = None,
) -> ParameterBag:
    """Merge router path parameters with static route arguments.

    Nested mappings in *path_params* become nested bags, recursively.
    *arguments* are laid over the result as-is and win on key collision.
    """
    merged = {key: _convert(value) for key, value in _pairs(path_params)}
    merged.update(_pairs(arguments or {}))
    return ParameterBag(merged)


class Dispatcher:
    """Registers handler routes with a router and invokes them.

    Usage::

        dispatcher = Dispatcher(context)
        dispatcher.register_all(registry, router)
        router.compile()
    """

    __slots__ = ("context",)

    def __init__(self, context: HandlerContext) -> None:
        self.context = context

    def register_all(self, registry: HandlerRegistry, router: Router) -> list[Route]:
        """Register every declared route, handlers and routes in order.

        Handler classes are checked up front: a descriptor naming a
        method the class does not have (or cannot call) raises
        ``HandlerMethodNotCallableError`` before anything is served.
        """
        routes: list[Route] = []
        for handler_id, descriptor in registry.all_bindings():
            factory = registry.binding(handler_id).factory
            if inspect.isclass(factory) and not callable(
                getattr(factory, descriptor.handler_method, None)
            ):
                raise HandlerMethodNotCallableError(
                    handler_id, descriptor.url, descriptor.handler_method
                )

            endpoint = self.endpoint(registry, handler_id, descriptor)
            route = router.register(
                descriptor.method,
                descriptor.url,
                endpoint,
                name=descriptor.name or None,
            )
            routes.append(route)
            logger.debug(
                "%s %s -> %s.%s",
                descriptor.method,
                descriptor.url,
                handler_id,
                descriptor.handler_method,
            )
        return routes

    def endpoint(
        self,
        registry: HandlerRegistry,
        handler_id: str,
        descriptor: RouteDescriptor,
    ) -> Endpoint:
        """Build the router endpoint for one declared route."""
        context = self.context

        async def endpoint(
            request: Request,
            response: Response,
            path_params: Mapping[str, Any],
        ) -> Any:
            params = to_parameter_bag(path_params, descriptor.arguments)
            instance = registry.get_or_create_instance(handler_id, context)
            target = getattr(instance, descriptor.handler_method, None)
            if not callable(target):
                raise HandlerMethodNotCallableError(
                    handler_id, descriptor.url, descriptor.handler_method
                )
            return await invoke(instance.on_request, request, response, params, target)

        endpoint.__qualname__ = f"{handler_id}.{descriptor.handler_method}"
        return endpoint
