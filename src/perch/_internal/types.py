"""Shared type aliases used across perch modules."""

from collections.abc import Awaitable, Callable
from typing import Any, TypeAlias

# Router endpoint: built by the Dispatcher, one per registered route
Endpoint: TypeAlias = Callable[..., Awaitable[Any]]

# Lifecycle hook: sync or async, no arguments
Hook: TypeAlias = Callable[[], Any]
