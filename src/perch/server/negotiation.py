"""Content negotiation: maps handler return values to Response objects.

isinstance-based dispatch, no magic, fully predictable.
"""

from typing import Any

from perch.errors import ConfigurationError
from perch.http.response import Response


def negotiate(value: Any, response: Response) -> Response:
    """Convert what ``on_request`` returned into a Response.

    *response* is the instance that was handed to the handler; it keeps
    any headers or status the handler never got to apply.

    Dispatch order:
    1. ``Response``            -> returned as-is
    2. ``None``                -> *response* unchanged
    3. ``dict`` / ``list``     -> *response* with a JSON body
    4. ``str`` / ``bytes``     -> *response* with that body
    5. ``(value, int)``        -> negotiate value, override status
    """
    match value:
        case Response():
            return value
        case None:
            return response
        case dict() | list():
            return response.with_json(value)
        case str() | bytes():
            return Response(
                body=value,
                status=response.status,
                content_type=response.content_type,
                headers=response.headers,
            )
        case (inner, int() as status):
            return negotiate(inner, response).with_status(status)
        case _:
            msg = (
                f"Handler returned {type(value).__name__!r}. "
                "Return a Response, dict, list, str, bytes, None, or (value, status)."
            )
            raise ConfigurationError(msg)
