"""Perch: class-based handler dispatch with JSON error translation.

Handler classes declare their routes; perch registers them with a trie
router, calls one shared instance per class through ``on_request``, and
turns every raised error into a structured JSON response.

Basic usage::

    from perch import App, Handler, route

    class Hello(Handler):
        @route("GET", "/hello/{name}")
        def hello(self, request, response, params):
            return {"hello": params.name}

    app = App()
    app.add_handler(Hello)
    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "AccessDeniedError",
    "App",
    "AppConfig",
    "ApplicationError",
    "ConfigurationError",
    "Handler",
    "HandlerClasses",
    "HandlerContext",
    "InvalidRequestError",
    "ParameterBag",
    "PerchError",
    "Request",
    "Response",
    "RouteDescriptor",
    "UnauthorizedError",
    "route",
]

_LAZY_IMPORTS: dict[str, str] = {
    "App": "perch.app",
    "AppConfig": "perch.config",
    "Handler": "perch.handlers.base",
    "HandlerContext": "perch.handlers.base",
    "route": "perch.handlers.base",
    "HandlerClasses": "perch.handlers.sources",
    "ParameterBag": "perch.dispatch",
    "Request": "perch.http.request",
    "Response": "perch.http.response",
    "RouteDescriptor": "perch.routing.route",
    "AccessDeniedError": "perch.errors",
    "ApplicationError": "perch.errors",
    "ConfigurationError": "perch.errors",
    "InvalidRequestError": "perch.errors",
    "PerchError": "perch.errors",
    "UnauthorizedError": "perch.errors",
}


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    module_name = _LAZY_IMPORTS.get(name)
    if module_name is None:
        msg = f"module 'perch' has no attribute {name!r}"
        raise AttributeError(msg)
    import importlib

    return getattr(importlib.import_module(module_name), name)
