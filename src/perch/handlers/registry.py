"""Handler registry: declared routes and shared handler instances.

Thread safety:
    ``register`` runs during setup, single-threaded. Instance creation
    uses a Lock + double-check so that concurrent first requests for the
    same handler construct it exactly once.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any, TypeAlias

from perch.errors import ConfigurationError, DuplicateHandlerError, InvalidRouteError
from perch.handlers.base import HandlerContext
from perch.routing.route import RouteDescriptor

logger = logging.getLogger("perch.app")

HandlerFactory: TypeAlias = Callable[[HandlerContext], Any]


@dataclass(frozen=True, slots=True)
class HandlerBinding:
    """A handler and the routes it declared, in declaration order."""

    handler_id: str
    descriptors: tuple[RouteDescriptor, ...]
    factory: HandlerFactory


class HandlerRegistry:
    """Maps handler ids to their bindings and lazily created instances.

    Usage::

        registry = HandlerRegistry()
        registry.register("app.Users", Users.get_routes(), Users)
        for handler_id, descriptor in registry.all_bindings():
            ...
        users = registry.get_or_create_instance("app.Users", context)
    """

    __slots__ = ("_bindings", "_instances", "_lock")

    def __init__(self) -> None:
        self._bindings: dict[str, HandlerBinding] = {}
        self._instances: dict[str, Any] = {}
        self._lock = threading.Lock()

    def register(
        self,
        handler_id: str,
        descriptors: Sequence[RouteDescriptor],
        factory: HandlerFactory,
    ) -> HandlerBinding:
        """Register a handler's routes.

        Raises ``DuplicateHandlerError`` if *handler_id* is already
        registered; an existing binding is never replaced. Raises
        ``InvalidRouteError`` if *descriptors* is empty or holds anything
        but ``RouteDescriptor`` values.
        """
        if handler_id in self._bindings:
            raise DuplicateHandlerError(handler_id)

        descriptors = tuple(descriptors)
        if not descriptors:
            msg = f"Handler {handler_id!r} declares no routes."
            raise InvalidRouteError(msg)
        for descriptor in descriptors:
            if not isinstance(descriptor, RouteDescriptor):
                msg = (
                    f"Handler {handler_id!r} declared {descriptor!r}; "
                    "routes must be RouteDescriptor instances."
                )
                raise InvalidRouteError(msg)

        binding = HandlerBinding(handler_id, descriptors, factory)
        self._bindings[handler_id] = binding
        logger.debug("registered handler %s with %d route(s)", handler_id, len(descriptors))
        return binding

    def add(self, binding: HandlerBinding) -> HandlerBinding:
        """Register a pre-built binding (as yielded by a ``HandlerSource``)."""
        return self.register(binding.handler_id, binding.descriptors, binding.factory)

    def binding(self, handler_id: str) -> HandlerBinding:
        """Return the binding for *handler_id*.

        Raises ``ConfigurationError`` for an unknown id.
        """
        try:
            return self._bindings[handler_id]
        except KeyError:
            msg = f"No handler registered as {handler_id!r}."
            raise ConfigurationError(msg) from None

    def get_or_create_instance(self, handler_id: str, context: HandlerContext) -> Any:
        """Return the shared instance for *handler_id*, creating it once."""
        instance = self._instances.get(handler_id)
        if instance is not None:
            return instance
        with self._lock:
            instance = self._instances.get(handler_id)
            if instance is None:
                instance = self.binding(handler_id).factory(context)
                self._instances[handler_id] = instance
                logger.debug("instantiated handler %s", handler_id)
        return instance

    def all_bindings(self) -> Iterator[tuple[str, RouteDescriptor]]:
        """Yield ``(handler_id, descriptor)`` pairs in registration order."""
        for handler_id, binding in self._bindings.items():
            for descriptor in binding.descriptors:
                yield handler_id, descriptor

    def __contains__(self, handler_id: object) -> bool:
        return handler_id in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)

    @property
    def handler_ids(self) -> list[str]:
        """Registered handler ids, in registration order."""
        return list(self._bindings)
