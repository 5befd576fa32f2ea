"""Class-based handlers: route declarations, registry, and sources."""

from perch.handlers.base import Handler, HandlerContext, route
from perch.handlers.registry import HandlerBinding, HandlerRegistry
from perch.handlers.sources import HandlerClasses, HandlerSource

__all__ = [
    "Handler",
    "HandlerBinding",
    "HandlerClasses",
    "HandlerContext",
    "HandlerRegistry",
    "HandlerSource",
    "route",
]
