"""Perch exception hierarchy.

Shared across Router, App, dispatch, and the error responder so every
module raises and catches the same types.

Three families:

- ``ConfigurationError`` and subclasses: raised while the app is being
  assembled or frozen. They abort startup and are never turned into
  responses.
- ``HTTPError`` subclasses: routing signals raised by the router.
- ``ApplicationError`` subclasses: raised by handlers. The conventional
  ones are pre-mapped to 400/401/403 by ``App``.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when app configuration is invalid.

    Typically raised during ``App._freeze()`` at startup.
    """


class InvalidRouteError(ConfigurationError):
    """A route declaration is malformed or a handler declares no routes."""


class DuplicateHandlerError(ConfigurationError):
    """A handler identifier was registered twice."""

    def __init__(self, handler_id: str) -> None:
        self.handler_id = handler_id
        super().__init__(f"Handler {handler_id!r} is already registered.")


class HandlerMethodNotCallableError(ConfigurationError):
    """A route points at a handler attribute that cannot be called."""

    def __init__(self, handler_id: str, url: str, method_name: str) -> None:
        self.handler_id = handler_id
        self.url = url
        self.method_name = method_name
        super().__init__(
            f"{handler_id} defines a route {url!r} for which the handler "
            f"{method_name!r} is not callable"
        )


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code.

    Raised by the router when a request cannot be matched. The request
    pipeline catches these and hands them to the ``ErrorResponder``.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818 (conventional name in web frameworks)
    """404: no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818 (conventional name in web frameworks)
    """405: route exists but not for this HTTP method.

    ``allowed`` keeps the methods in the order they were registered on
    the path. The ``Allow`` header uses the same order.
    """

    def __init__(self, allowed: tuple[str, ...], detail: str = "") -> None:
        allow_value = ", ".join(allowed)
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )
        object.__setattr__(self, "allowed", allowed)


class ApplicationError(PerchError):
    """Base for errors a handler raises on purpose.

    ``code`` is an application-level error code. A non-zero code is
    echoed in the JSON error body next to the message.
    """

    def __init__(self, message: str = "", code: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class InvalidRequestError(ApplicationError):
    """The request is malformed or fails validation (400 by default)."""


class UnauthorizedError(ApplicationError):
    """The request lacks valid credentials (401 by default)."""


class AccessDeniedError(ApplicationError):
    """The caller is authenticated but not allowed (403 by default)."""
