"""Middleware protocol.

Middleware wraps the dispatch step. The first one added is the
outermost: it sees the request first and the response last.
"""

from perch.middleware.protocol import Middleware, Next

__all__ = ["Middleware", "Next"]
