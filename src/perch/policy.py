"""Exception policy: maps exception kinds to HTTP status codes.

Also owns the debug gate: the request header (name and expected value)
that lets a caller see stack traces for internal errors.

Lookup is by exact exception kind. Subclasses of a registered kind are
*not* mapped: every concrete kind that should produce a non-500 status
must be registered on its own. Widening this changes which errors can
ever have their details disclosed.

Thread safety:
    Mutations take a lock. The app configures the policy during setup
    and refuses further changes once it is frozen, so request-time reads
    see a stable mapping.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TypeAlias

from perch.http.request import Request

INTERNAL_ERROR_STATUS = 500


def kind_of(exc_type: type[BaseException]) -> str:
    """Fully-qualified kind identifier for an exception class."""
    return f"{exc_type.__module__}.{exc_type.__qualname__}"


ExceptionKind: TypeAlias = type[BaseException] | str


@dataclass(frozen=True, slots=True)
class DebugGate:
    """Header name and value a request must carry to see error details."""

    header: str
    expected_value: str


class ExceptionPolicy:
    """Registry of exception kind -> HTTP status code, plus the debug gate.

    Kinds can be given as exception classes or as their fully-qualified
    names (``"myapp.errors.Conflict"``); both resolve to the same key.

    Usage::

        policy = ExceptionPolicy()
        policy.set_status(Conflict, 409)
        policy.set_status([Gone, Expired], 410)
        policy.status_for(Conflict("taken"))  # 409
        policy.status_for(KeyError("x"))      # 500
    """

    __slots__ = ("_debug_gate", "_lock", "_statuses")

    def __init__(self) -> None:
        self._statuses: dict[str, int] = {}
        self._debug_gate: DebugGate | None = None
        self._lock = threading.Lock()

    def set_status(self, kinds: ExceptionKind | Iterable[ExceptionKind], status: int) -> None:
        """Map one or more exception kinds to *status*.

        A later call for the same kind overwrites the earlier one.
        """
        if not 100 <= status <= 599:
            msg = f"Status code must be between 100 and 599, got {status}."
            raise ValueError(msg)
        if isinstance(kinds, (str, type)):
            kinds = (kinds,)
        keys = [self._key(kind) for kind in kinds]
        with self._lock:
            for key in keys:
                self._statuses[key] = status

    @staticmethod
    def _key(kind: ExceptionKind) -> str:
        if isinstance(kind, str):
            if not kind:
                msg = "Exception kind must not be empty."
                raise ValueError(msg)
            return kind
        return kind_of(kind)

    def status_for(self, exc: BaseException) -> int:
        """Status registered for the concrete kind of *exc*, else 500."""
        return self._statuses.get(kind_of(type(exc)), INTERNAL_ERROR_STATUS)

    @property
    def statuses(self) -> dict[str, int]:
        """Copy of the kind -> status mapping, in registration order."""
        return dict(self._statuses)

    def set_debug_gate(self, header: str, expected_value: str = "") -> None:
        """Configure the debug header. An empty *header* disables disclosure."""
        with self._lock:
            self._debug_gate = DebugGate(header, expected_value) if header else None

    @property
    def debug_gate(self) -> DebugGate | None:
        return self._debug_gate

    def should_disclose_details(self, request: Request) -> bool:
        """True if *request* carries the debug header with the exact value.

        Only the first value of the header counts. No case folding or
        whitespace trimming is applied to the value.
        """
        gate = self._debug_gate
        if gate is None:
            return False
        values = request.headers.get_list(gate.header)
        return bool(values) and values[0] == gate.expected_value
