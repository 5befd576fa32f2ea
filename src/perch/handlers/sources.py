"""Handler sources: where the app gets its handler classes from.

A source is anything iterable that yields ``HandlerBinding`` values.
Perch ships ``HandlerClasses`` for explicit lists of classes; anything
that finds classes another way (a plugin entry point, a package walk)
only has to yield bindings.
"""

from __future__ import annotations

import inspect
from collections.abc import Iterable, Iterator
from typing import Protocol, runtime_checkable

from perch.errors import ConfigurationError
from perch.handlers.registry import HandlerBinding


@runtime_checkable
class HandlerSource(Protocol):
    """Yields handler bindings in the order they should be registered."""

    def __iter__(self) -> Iterator[HandlerBinding]: ...


def handler_id_for(cls: type) -> str:
    """Fully-qualified name used as the handler id of *cls*."""
    return f"{cls.__module__}.{cls.__qualname__}"


def binding_for(cls: type) -> HandlerBinding:
    """Build the binding of one handler class.

    Raises ``ConfigurationError`` if *cls* is not a class or has no
    ``get_routes()``.
    """
    if not inspect.isclass(cls):
        msg = f"Expected a handler class, got {cls!r}."
        raise ConfigurationError(msg)
    get_routes = getattr(cls, "get_routes", None)
    if not callable(get_routes):
        msg = f"{handler_id_for(cls)} does not define get_routes()."
        raise ConfigurationError(msg)
    return HandlerBinding(handler_id_for(cls), tuple(get_routes()), cls)


class HandlerClasses:
    """A source over an explicit collection of handler classes.

    Abstract classes (``inspect.isabstract``) are skipped so shared base
    handlers can live next to concrete ones.
    """

    __slots__ = ("_classes",)

    def __init__(self, classes: Iterable[type]) -> None:
        self._classes = tuple(classes)

    def __iter__(self) -> Iterator[HandlerBinding]:
        for cls in self._classes:
            if inspect.isclass(cls) and inspect.isabstract(cls):
                continue
            yield binding_for(cls)
