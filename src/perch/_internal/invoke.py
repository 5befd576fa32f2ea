"""Invoke helpers: call sync or async callables uniformly.

``on_request`` implementations, handler methods, middleware and
lifecycle hooks can all be ``def`` or ``async def``. Any code that calls
one of them goes through this helper so the sync/async check lives in
exactly one place.

Usage::

    from perch._internal.invoke import invoke

    result = await invoke(instance.on_request, request, response, params, target)
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it's awaitable.

    Works with both sync and async callables::

        class Users(Handler):
            def show(self, request, response, params):
                return {"id": params.id}

            async def search(self, request, response, params):
                return await self.store.search(request.query.get("q"))
    """
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
