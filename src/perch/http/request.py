"""Immutable HTTP request.

Frozen metadata with async body access. Body parsing beyond raw bytes,
text and JSON is left to handlers.
"""

from __future__ import annotations

import json as json_module
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field, replace
from typing import Any

from perch._internal.asgi import Receive, Scope
from perch.http.headers import Headers
from perch.http.query import QueryParams


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata (method, path, headers, etc.) is frozen at creation.
    ``path`` is the application-relative path: the configured base path
    has already been stripped. ``full_path`` keeps the original.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    path_params: dict[str, str]
    full_path: str
    client: tuple[str, int] | None

    # Private: ASGI receive callable for body streaming
    _receive: Receive

    # Private: mutable cache for the body
    # (dict contents are mutable even though the field reference is frozen)
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    async def body(self) -> bytes:
        """Read the full request body.

        Result is cached. The ASGI receive is consumed once, then
        the same bytes are returned on subsequent calls.
        """
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks = [chunk async for chunk in self.stream()]
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks."""
        while True:
            message = await self._receive()
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def json(self) -> Any:
        """Parse the body as JSON."""
        return json_module.loads(await self.body())

    async def text(self) -> str:
        """Read the body as text (UTF-8)."""
        raw = await self.body()
        return raw.decode("utf-8")

    def with_path_params(self, path_params: dict[str, str]) -> Request:
        """Return a copy carrying the router's path parameters.

        The body cache is shared so a body read by middleware is not lost.
        """
        return replace(self, path_params=path_params)

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive, *, base_path: str = "") -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        full_path = scope["path"]
        path = full_path
        if base_path and (full_path == base_path or full_path.startswith(base_path + "/")):
            path = full_path[len(base_path):] or "/"
        client = scope.get("client")
        return cls(
            method=scope["method"].upper(),
            path=path,
            headers=Headers(tuple(scope.get("headers", ()))),
            query=QueryParams(scope.get("query_string", b"")),
            path_params={},
            full_path=full_path,
            client=tuple(client) if client else None,
            _receive=receive,
        )
