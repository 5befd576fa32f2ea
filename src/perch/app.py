"""Perch application class.

Mutable during setup (handlers, exception mapping, debug header,
middleware, services). Frozen at runtime when ``app.run()`` or
``__call__()`` is first invoked.
"""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Iterable
from types import MappingProxyType
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.types import Hook
from perch.config import AppConfig
from perch.dispatch import Dispatcher
from perch.errors import AccessDeniedError, InvalidRequestError, UnauthorizedError
from perch.handlers.base import HandlerContext
from perch.handlers.registry import HandlerBinding, HandlerRegistry
from perch.handlers.sources import binding_for
from perch.middleware.protocol import Middleware
from perch.policy import ExceptionKind, ExceptionPolicy
from perch.routing.router import Router
from perch.server.errors import ErrorResponder
from perch.server.handler import handle_request

logger = logging.getLogger("perch.app")


class App:
    """The perch application.

    Usage::

        app = App(AppConfig(display_error_details=True))
        app.add_handler(Users)
        app.set_exception(Conflict, 409)
        app.set_debug_header("X-Debug", "let-me-see")
        app.run()

    ``InvalidRequestError``, ``UnauthorizedError`` and ``AccessDeniedError``
    are mapped to 400, 401 and 403 from the start. The debug header is
    unset, so no request can see error details until one is configured.

    Thread safety:
        The setup phase is single-threaded. The freeze transition uses a
        Lock + double-check to ensure exactly one thread registers routes,
        even if several ASGI workers call ``__call__()`` concurrently on
        first request.
    """

    __slots__ = (
        "_freeze_lock",
        "_frozen",
        "_middleware",
        "_middleware_list",
        "_policy",
        "_registry",
        # Compiled state (populated by _freeze)
        "_responder",
        "_router",
        "_services",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
    )

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self._registry = HandlerRegistry()
        self._policy = ExceptionPolicy()
        self._middleware_list: list[Middleware] = []
        self._services: dict[str, Any] = {}
        self._startup_hooks: list[Hook] = []
        self._shutdown_hooks: list[Hook] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._router: Router | None = None
        self._middleware: tuple[Middleware, ...] = ()
        self._responder: ErrorResponder | None = None

        self.set_exception(InvalidRequestError, 400)
        self.set_exception(UnauthorizedError, 401)
        self.set_exception(AccessDeniedError, 403)
        self.set_debug_header("")

    # -- Error configuration --

    def set_exception(
        self,
        kinds: ExceptionKind | Iterable[ExceptionKind],
        status: int,
    ) -> None:
        """Map one exception kind, or several, to an HTTP status code.

        Lookup is by exact kind: subclasses must be registered themselves.
        """
        self._check_not_frozen()
        self._policy.set_status(kinds, status)

    def set_debug_header(self, header: str, expected_value: str = "") -> None:
        """Set the request header that unlocks error details.

        With ``AppConfig(display_error_details=True)``, a request carrying
        *header* with exactly *expected_value* receives the exception kind,
        message and stack trace of internal (500) errors in the JSON body.
        An empty *header* disables this.
        """
        self._check_not_frozen()
        self._policy.set_debug_gate(header, expected_value)

    # -- Handler registration --

    def add_handler(self, handler_class: type) -> None:
        """Add a single handler class. It must define ``get_routes()``."""
        self._check_not_frozen()
        self._registry.add(binding_for(handler_class))

    def add_handlers(self, source: Iterable[HandlerBinding]) -> None:
        """Add every handler a ``HandlerSource`` yields, in order."""
        self._check_not_frozen()
        for binding in source:
            self._registry.add(binding)

    # -- Services --

    def provide(self, name: str, value: Any) -> None:
        """Make *value* available to handlers as ``context.services[name]``."""
        self._check_not_frozen()
        self._services[name] = value

    # -- Middleware --

    def add_middleware(self, middleware: Middleware) -> None:
        """Add a middleware to the pipeline. The first added runs outermost."""
        self._check_not_frozen()
        self._middleware_list.append(middleware)

    # -- Lifecycle hooks --

    def on_startup(self, func: Hook) -> Hook:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        before the server begins accepting HTTP requests.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Hook) -> Hook:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Introspection --

    @property
    def policy(self) -> ExceptionPolicy:
        return self._policy

    @property
    def registry(self) -> HandlerRegistry:
        return self._registry

    @property
    def router(self) -> Router:
        """The compiled router. Freezes the app on first access."""
        self._ensure_frozen()
        assert self._router is not None
        return self._router

    def url_for(self, name: str, **params: Any) -> str:
        """Build the URL of the route named *name*, base path included."""
        path = self.router.url_for(name, params)
        base = self.config.base_path
        if not base:
            return path
        return base if path == "/" else base + path

    # -- Server --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Compile the app and serve it with pounce.

        Route registration errors surface here, before the server starts.
        """
        self._ensure_frozen()
        from perch.server.dev import run_server

        run_server(
            self,
            host or self.config.host,
            port or self.config.port,
            reload=self.config.debug,
        )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        self._ensure_frozen()
        assert self._router is not None
        assert self._responder is not None

        await handle_request(
            scope,
            receive,
            send,
            router=self._router,
            middleware=self._middleware,
            responder=self._responder,
            display_error_details=self.config.display_error_details,
            base_path=self.config.base_path,
        )

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup so configuration errors fail the
        startup instead of the first request.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self._ensure_frozen()
                    await self.startup()
                except Exception as exc:
                    logger.exception("startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def startup(self) -> None:
        """Run startup hooks in registration order."""
        for hook in self._startup_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    async def shutdown(self) -> None:
        """Run shutdown hooks in registration order."""
        for hook in self._shutdown_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        context = HandlerContext(
            config=self.config,
            url_for=self.url_for,
            services=MappingProxyType(dict(self._services)),
        )

        router = Router()
        routes = Dispatcher(context).register_all(self._registry, router)
        router.compile()

        self._router = router
        self._middleware = tuple(self._middleware_list)
        self._responder = ErrorResponder(self._policy, self.config)
        self._frozen = True

        logger.info(
            "perch app ready: %d handler(s), %d route(s)%s",
            len(self._registry),
            len(routes),
            f" under {self.config.base_path}" if self.config.base_path else "",
        )
        logger.debug("handlers: %s", ", ".join(self._registry.handler_ids))

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register handlers, exceptions and middleware before calling app.run()."
            )
            raise RuntimeError(msg)
