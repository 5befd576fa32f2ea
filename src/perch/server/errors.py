"""Error responses for perch requests.

The three terminal handlers of the request pipeline. Each one builds a
JSON body of the shape::

    {"status": "error", "message": "...", "code"?: int,
     "allowedMethods"?: [...], "details"?: {...}}

Internal errors (status 500) never carry their own message to the
client. Details (kind, message, stack trace) are attached only when the
server-wide ``display_error_details`` flag is on *and* the request
carries the configured debug header with the expected value.
"""

import logging
import traceback
from typing import Any

from perch.config import AppConfig
from perch.http.request import Request
from perch.http.response import Response
from perch.policy import INTERNAL_ERROR_STATUS, ExceptionPolicy, kind_of

logger = logging.getLogger("perch.server")


def error_body(message: str, **extra: Any) -> dict[str, Any]:
    """Base error payload; *extra* keys are appended in order."""
    return {"status": "error", "message": message, **extra}


def error_details(exc: BaseException) -> dict[str, Any]:
    """Kind, message and a line-by-line stack trace for *exc*."""
    formatted = "".join(traceback.format_exception(exc))
    return {
        "exception": kind_of(type(exc)),
        "message": str(exc),
        "stacktrace": formatted.rstrip("\n").split("\n"),
    }


def _application_code(exc: BaseException) -> int:
    code = getattr(exc, "code", 0)
    if isinstance(code, int) and not isinstance(code, bool):
        return code
    return 0


class ErrorResponder:
    """Builds the final response for a failed request."""

    __slots__ = ("config", "policy")

    def __init__(self, policy: ExceptionPolicy, config: AppConfig) -> None:
        self.policy = policy
        self.config = config

    def on_error(
        self,
        request: Request,
        exc: BaseException,
        display_details: bool = False,
    ) -> Response:
        """Translate any handler or middleware error into a JSON response."""
        status = self.policy.status_for(exc)
        body = error_body(str(exc))

        code = _application_code(exc)
        if code:
            body["code"] = code

        if status == INTERNAL_ERROR_STATUS:
            logger.exception(
                "500 %s %s", request.method, request.full_path, exc_info=exc
            )
            body["message"] = self.config.error_message
            if display_details and self.policy.should_disclose_details(request):
                body["details"] = error_details(exc)
        else:
            logger.info(
                "%d %s %s - %s: %s",
                status,
                request.method,
                request.full_path,
                type(exc).__name__,
                exc,
            )

        return Response().with_json(body, status)

    def on_not_found(self, request: Request) -> Response:
        """404 with a fixed message, whatever the path or method."""
        logger.debug("404 %s %s", request.method, request.full_path)
        return Response().with_json(error_body(self.config.not_found_message), 404)

    def on_method_not_allowed(self, request: Request, exc: BaseException) -> Response:
        """405 listing the methods registered on the request path.

        The method set comes from the routing failure. If it carries
        none, the list and the ``Allow`` header are empty.
        """
        methods = list(getattr(exc, "allowed", None) or ())
        logger.debug(
            "405 %s %s - allowed: %s", request.method, request.full_path, methods
        )
        body = error_body(self.config.method_not_allowed_message, allowedMethods=methods)
        return Response().with_json(body, 405).with_header("Allow", ", ".join(methods))
