"""Tests for perch.handlers.registry and perch.handlers.sources."""

import abc
import threading
import time

import anyio
import pytest

from perch.config import AppConfig
from perch.errors import ConfigurationError, DuplicateHandlerError, InvalidRouteError
from perch.handlers.base import Handler, HandlerContext, route
from perch.handlers.registry import HandlerRegistry
from perch.handlers.sources import HandlerClasses, HandlerSource, binding_for, handler_id_for
from perch.routing.route import RouteDescriptor


def _context() -> HandlerContext:
    return HandlerContext(config=AppConfig(), url_for=lambda name, **params: "/")


def _routes(*urls: str) -> list[RouteDescriptor]:
    return [RouteDescriptor("GET", url, "show") for url in urls]


class TestRegister:
    def test_register_and_lookup(self) -> None:
        registry = HandlerRegistry()
        binding = registry.register("a.A", _routes("/a"), object)
        assert registry.binding("a.A") is binding
        assert "a.A" in registry
        assert len(registry) == 1

    def test_duplicate_rejected(self) -> None:
        registry = HandlerRegistry()
        registry.register("a.A", _routes("/a"), object)
        with pytest.raises(DuplicateHandlerError):
            registry.register("a.A", _routes("/other"), object)
        assert [d.url for _, d in registry.all_bindings()] == ["/a"]

    def test_empty_descriptors_rejected(self) -> None:
        with pytest.raises(InvalidRouteError):
            HandlerRegistry().register("a.A", [], object)

    def test_non_descriptor_rejected(self) -> None:
        with pytest.raises(InvalidRouteError):
            HandlerRegistry().register("a.A", [("GET", "/a", "show")], object)  # type: ignore[list-item]

    def test_unknown_binding(self) -> None:
        with pytest.raises(ConfigurationError):
            HandlerRegistry().binding("missing")

    def test_handler_ids_in_registration_order(self) -> None:
        registry = HandlerRegistry()
        registry.register("b.B", _routes("/b"), object)
        registry.register("a.A", _routes("/a"), object)
        assert registry.handler_ids == ["b.B", "a.A"]
        registry.handler_ids.clear()
        assert len(registry) == 2


class TestAllBindings:
    def test_registration_then_declaration_order(self) -> None:
        registry = HandlerRegistry()
        registry.register("A", _routes("/a1", "/a2"), object)
        registry.register("B", _routes("/b1"), object)

        pairs = [(handler_id, d.url) for handler_id, d in registry.all_bindings()]
        assert pairs == [("A", "/a1"), ("A", "/a2"), ("B", "/b1")]

    def test_is_lazy(self) -> None:
        registry = HandlerRegistry()
        registry.register("A", _routes("/a1"), object)
        pairs = registry.all_bindings()
        assert next(pairs)[0] == "A"


class TestInstances:
    def test_created_once_and_reused(self) -> None:
        calls: list[HandlerContext] = []

        def factory(context: HandlerContext) -> object:
            calls.append(context)
            return object()

        registry = HandlerRegistry()
        registry.register("A", _routes("/a"), factory)
        context = _context()

        first = registry.get_or_create_instance("A", context)
        second = registry.get_or_create_instance("A", context)
        assert first is second
        assert calls == [context]

    def test_unknown_handler(self) -> None:
        with pytest.raises(ConfigurationError):
            HandlerRegistry().get_or_create_instance("missing", _context())

    async def test_concurrent_first_access_constructs_once(self) -> None:
        workers = 16
        constructed: list[object] = []
        barrier = threading.Barrier(workers, timeout=5)

        def factory(context: HandlerContext) -> object:
            time.sleep(0.01)
            instance = object()
            constructed.append(instance)
            return instance

        registry = HandlerRegistry()
        registry.register("A", _routes("/a"), factory)
        context = _context()
        results: list[object] = []

        def grab() -> object:
            barrier.wait()
            return registry.get_or_create_instance("A", context)

        async def worker() -> None:
            results.append(await anyio.to_thread.run_sync(grab))

        async with anyio.create_task_group() as tg:
            for _ in range(workers):
                tg.start_soon(worker)

        assert len(constructed) == 1
        assert len(results) == workers
        assert all(result is constructed[0] for result in results)


class Users(Handler):
    @route("GET", "/users")
    def index(self, request, response, params):
        return []


class Posts(Handler):
    @route("GET", "/posts")
    def index(self, request, response, params):
        return []


class AbstractBase(Handler, abc.ABC):
    @abc.abstractmethod
    def load(self) -> None: ...


class TestSources:
    def test_handler_id_is_qualified_name(self) -> None:
        assert handler_id_for(Users) == f"{__name__}.Users"

    def test_binding_for_class(self) -> None:
        binding = binding_for(Users)
        assert binding.handler_id == handler_id_for(Users)
        assert binding.factory is Users
        assert [d.url for d in binding.descriptors] == ["/users"]

    def test_binding_for_rejects_non_class(self) -> None:
        with pytest.raises(ConfigurationError):
            binding_for(Users.index)  # type: ignore[arg-type]

    def test_binding_for_rejects_class_without_routes(self) -> None:
        class Plain:
            pass

        with pytest.raises(ConfigurationError, match="get_routes"):
            binding_for(Plain)

    def test_handler_classes_keeps_order_and_skips_abstract(self) -> None:
        source = HandlerClasses([Posts, AbstractBase, Users])
        assert isinstance(source, HandlerSource)
        assert [b.factory for b in source] == [Posts, Users]
