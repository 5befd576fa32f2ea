"""ASGI request pipeline: the single place where errors are caught.

Builds the Request from the ASGI scope, runs middleware around the
router dispatch, and turns whatever comes out (a handler result or an
exception) into exactly one response:

- match        -> handler result, negotiated into a Response
- ``NotFound`` -> ``ErrorResponder.on_not_found``
- ``MethodNotAllowed`` -> ``ErrorResponder.on_method_not_allowed``
- anything else -> ``ErrorResponder.on_error``
"""

from collections.abc import Callable
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.invoke import invoke
from perch.errors import MethodNotAllowed, NotFound
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import Next
from perch.routing.router import Router
from perch.server.errors import ErrorResponder
from perch.server.negotiation import negotiate
from perch.server.sender import send_response


def _under_base_path(path: str, base_path: str) -> bool:
    return not base_path or path == base_path or path.startswith(base_path + "/")


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    middleware: tuple[Callable[..., Any], ...],
    responder: ErrorResponder,
    display_error_details: bool,
    base_path: str = "",
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive, base_path=base_path)

    async def dispatch(req: Request) -> Response:
        if not _under_base_path(req.full_path, base_path):
            raise NotFound(f"{req.full_path!r} is outside {base_path!r}")
        match = router.match(req.method, req.path)
        req = req.with_path_params(match.path_params)
        response = Response()
        result = await match.route.endpoint(req, response, match.path_params)
        return negotiate(result, response)

    # Wrap middleware around the dispatch, first added is outermost
    handler: Next = dispatch
    for mw in reversed(middleware):

        async def make_next(req: Request, _mw: Any = mw, _next: Next = handler) -> Response:
            return await invoke(_mw, req, _next)

        handler = make_next

    try:
        response = await handler(request)
    except NotFound:
        response = responder.on_not_found(request)
    except MethodNotAllowed as exc:
        response = responder.on_method_not_allowed(request, exc)
    except Exception as exc:
        response = responder.on_error(request, exc, display_error_details)

    await send_response(response, send, method=request.method)
