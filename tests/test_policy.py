"""Tests for perch.policy: exception kind mapping and the debug gate."""

from typing import Any

import pytest

from perch.http.request import Request
from perch.policy import INTERNAL_ERROR_STATUS, DebugGate, ExceptionPolicy, kind_of


class Conflict(Exception):
    pass


class SpecificConflict(Conflict):
    pass


class Gone(Exception):
    pass


async def _receive() -> dict[str, Any]:
    return {"type": "http.request", "body": b"", "more_body": False}


def _request(headers: list[tuple[bytes, bytes]] | None = None) -> Request:
    scope = {"method": "GET", "path": "/", "headers": headers or []}
    return Request.from_asgi(scope, _receive)


class TestKindOf:
    def test_builtin(self) -> None:
        assert kind_of(KeyError) == "builtins.KeyError"

    def test_module_qualified(self) -> None:
        assert kind_of(Conflict) == f"{__name__}.Conflict"


class TestStatusFor:
    def test_unregistered_is_internal_error(self) -> None:
        policy = ExceptionPolicy()
        assert policy.status_for(RuntimeError("boom")) == INTERNAL_ERROR_STATUS

    def test_registered_kind(self) -> None:
        policy = ExceptionPolicy()
        policy.set_status(Conflict, 409)
        assert policy.status_for(Conflict("taken")) == 409

    def test_subclass_not_matched(self) -> None:
        policy = ExceptionPolicy()
        policy.set_status(Conflict, 409)
        assert policy.status_for(SpecificConflict("taken")) == 500

    def test_base_not_matched_by_subclass_registration(self) -> None:
        policy = ExceptionPolicy()
        policy.set_status(SpecificConflict, 409)
        assert policy.status_for(Conflict("taken")) == 500

    def test_several_kinds_at_once(self) -> None:
        policy = ExceptionPolicy()
        policy.set_status([Conflict, Gone], 410)
        assert policy.status_for(Conflict()) == 410
        assert policy.status_for(Gone()) == 410

    def test_string_kind(self) -> None:
        policy = ExceptionPolicy()
        policy.set_status(f"{__name__}.Gone", 410)
        assert policy.status_for(Gone()) == 410

    def test_later_registration_overwrites(self) -> None:
        policy = ExceptionPolicy()
        policy.set_status(Conflict, 409)
        policy.set_status(Conflict, 422)
        assert policy.status_for(Conflict()) == 422
        assert policy.statuses == {kind_of(Conflict): 422}

    def test_statuses_is_a_copy(self) -> None:
        policy = ExceptionPolicy()
        policy.set_status(Conflict, 409)
        policy.statuses.clear()
        assert policy.status_for(Conflict()) == 409

    @pytest.mark.parametrize("status", [0, 99, 600, 1000])
    def test_rejects_invalid_status(self, status: int) -> None:
        with pytest.raises(ValueError, match="between 100 and 599"):
            ExceptionPolicy().set_status(Conflict, status)

    def test_rejects_empty_kind(self) -> None:
        with pytest.raises(ValueError, match="empty"):
            ExceptionPolicy().set_status("", 400)


class TestDebugGate:
    def test_no_gate_by_default(self) -> None:
        policy = ExceptionPolicy()
        assert policy.debug_gate is None
        assert not policy.should_disclose_details(_request([(b"x-debug", b"")]))

    def test_matching_value(self) -> None:
        policy = ExceptionPolicy()
        policy.set_debug_gate("X-Debug", "secret1")
        assert policy.debug_gate == DebugGate("X-Debug", "secret1")
        assert policy.should_disclose_details(_request([(b"x-debug", b"secret1")]))

    def test_wrong_value(self) -> None:
        policy = ExceptionPolicy()
        policy.set_debug_gate("X-Debug", "secret1")
        assert not policy.should_disclose_details(_request([(b"x-debug", b"secret2")]))

    def test_header_absent(self) -> None:
        policy = ExceptionPolicy()
        policy.set_debug_gate("X-Debug", "secret1")
        assert not policy.should_disclose_details(_request())

    def test_value_is_compared_exactly(self) -> None:
        policy = ExceptionPolicy()
        policy.set_debug_gate("X-Debug", "secret1")
        assert not policy.should_disclose_details(_request([(b"x-debug", b" secret1")]))
        assert not policy.should_disclose_details(_request([(b"x-debug", b"SECRET1")]))

    def test_only_first_value_counts(self) -> None:
        policy = ExceptionPolicy()
        policy.set_debug_gate("X-Debug", "secret1")
        headers = [(b"x-debug", b"nope"), (b"x-debug", b"secret1")]
        assert not policy.should_disclose_details(_request(headers))

    def test_empty_expected_value(self) -> None:
        policy = ExceptionPolicy()
        policy.set_debug_gate("X-Debug")
        assert policy.should_disclose_details(_request([(b"x-debug", b"")]))
        assert not policy.should_disclose_details(_request())

    def test_empty_header_clears_gate(self) -> None:
        policy = ExceptionPolicy()
        policy.set_debug_gate("X-Debug", "secret1")
        policy.set_debug_gate("")
        assert policy.debug_gate is None
        assert not policy.should_disclose_details(_request([(b"x-debug", b"secret1")]))
