"""
Tests for UnitRegistry and the @register_unit decorator.
"""

from __future__ import annotations

import pytest

from funcweb.core.errors import (
    DuplicateUnitError,
    IntrospectionError,
    RegistryError,
    RegistryFrozenError,
    UnitNotFoundError,
)
from funcweb.core.streams import Stream
from funcweb.framework.metadata import MethodMetadata, ResolvedTypeMetadata, SourceFileMetadata
from funcweb.framework.registry import UnitRegistry, get_registry, register_unit
from funcweb.framework.units import Consumer, Function, Supplier, UnitShape


def uppercase(value: str) -> str:
    return value.upper()


class Reverse(Function[str, str]):
    def __call__(self, value: str) -> str:
        return value[::-1]


class TestRegister:
    def test_register_and_get(self, registry):
        registry.register("uppercase", uppercase)
        assert registry.get("uppercase") is uppercase
        assert registry.shape_for("uppercase") is UnitShape.FUNCTION
        assert "uppercase" in registry
        assert len(registry) == 1

    def test_aliases_resolve_to_canonical(self, registry):
        registry.register("uppercase", uppercase, aliases=["upper", "caps"])
        assert registry.get("upper") is uppercase
        assert registry.canonical_name("caps") == "uppercase"
        assert registry.aliases("uppercase") == {"upper", "caps"}
        assert registry.names_for("upper") == ["uppercase", "upper", "caps"]

    def test_alias_equal_to_name_is_dropped(self, registry):
        registry.register("uppercase", uppercase, aliases=["uppercase", "upper"])
        assert registry.names_for("uppercase") == ["uppercase", "upper"]

    def test_duplicate_name(self, registry):
        registry.register("uppercase", uppercase)
        with pytest.raises(DuplicateUnitError):
            registry.register("uppercase", str.lower, shape=UnitShape.FUNCTION)

    def test_duplicate_alias(self, registry):
        registry.register("uppercase", uppercase, aliases=["u"])
        with pytest.raises(DuplicateUnitError) as exc:
            registry.register("other", str.lower, shape=UnitShape.FUNCTION, aliases=["u"])
        assert exc.value.unit_name == "u"

    @pytest.mark.parametrize("name", ["", "/", "//"])
    def test_empty_name(self, registry, name):
        with pytest.raises(RegistryError):
            registry.register(name, uppercase)

    def test_frozen_registry_rejects(self, registry):
        registry.freeze()
        assert registry.frozen
        with pytest.raises(RegistryFrozenError):
            registry.register("uppercase", uppercase)

    def test_unknown_name(self, registry):
        registry.register("uppercase", uppercase)
        with pytest.raises(UnitNotFoundError, match="Available: uppercase"):
            registry.get("missing")

    def test_names_keep_registration_order(self, registry):
        for name in ("c", "a", "b"):
            registry.register(name, uppercase)
        assert registry.names() == ["c", "a", "b"]
        assert [name for name, _, _ in registry.units()] == ["c", "a", "b"]

    def test_find_names(self, registry):
        registry.register("uppercase", uppercase, aliases=["upper"])
        registry.register("shout", uppercase)
        assert registry.find_names(uppercase) == ["uppercase", "upper", "shout"]

    def test_non_callable_rejected(self, registry):
        with pytest.raises(IntrospectionError):
            registry.register("value", 42)


class TestMetadataSelection:
    def test_plain_callable_gets_resolved_tree(self, registry):
        registry.register("uppercase", uppercase)
        assert isinstance(registry.metadata_for("uppercase"), ResolvedTypeMetadata)

    def test_unit_base_instance_gets_source_metadata(self, registry):
        registry.register("reverse", Reverse())
        assert isinstance(registry.metadata_for("reverse"), SourceFileMetadata)

    def test_factory_gets_method_metadata(self, registry):
        def uppercase_factory() -> Function[Stream[str], Stream[str]]:
            return Reverse()

        registry.register_factory("reverse", uppercase_factory)
        assert isinstance(registry.metadata_for("reverse"), MethodMetadata)
        assert registry.shape_for("reverse") is UnitShape.FUNCTION

    def test_register_source_by_module(self, registry):
        registry.register_source("reverse", __name__, "Reverse")
        assert isinstance(registry.get("reverse"), Reverse)
        assert registry.record_for("reverse").input_type is str


class TestRecord:
    def test_record_for_function(self, registry):
        registry.register("uppercase", uppercase, aliases=["upper"])
        record = registry.record_for("upper")
        assert record.name == "uppercase"
        assert record.names == ("uppercase", "upper")
        assert record.input_type is str
        assert record.output_type is str
        assert record.native_stream is False

    def test_record_for_supplier_has_no_input(self, registry):
        def words() -> str:
            return "hi"

        registry.register("words", words)
        record = registry.record_for("words")
        assert record.shape is UnitShape.SUPPLIER
        assert record.input_type is None
        assert record.output_type is str

    def test_record_is_memoized(self, registry):
        registry.register("uppercase", uppercase)
        assert registry.record_for("uppercase") is registry.record_for("uppercase")


class TestDecorator:
    def test_registers_on_default_registry(self):
        @register_unit("shout", aliases=["yell"])
        def shout(value: str) -> str:
            return value.upper() + "!"

        assert get_registry().get("yell") is shout

    def test_name_defaults_to_function_name(self):
        @register_unit()
        def whisper(value: str) -> str:
            return value.lower()

        assert "whisper" in get_registry()

    def test_class_registers_instance(self, registry):
        @register_unit("greeting", registry=registry)
        class Greeting(Supplier[str]):
            def __call__(self) -> str:
                return "hello"

        assert isinstance(registry.get("greeting"), Greeting)
        assert registry.shape_for("greeting") is UnitShape.SUPPLIER

    def test_explicit_shape(self, registry):
        @register_unit("sink", shape=UnitShape.CONSUMER, registry=registry)
        class Sink(Consumer[int]):
            def __call__(self, value: int) -> None:
                pass

        assert registry.shape_for("sink") is UnitShape.CONSUMER

    def test_empty_explicit_registry_is_used(self, registry):
        assert len(registry) == 0

        @register_unit("echo", registry=registry)
        def echo(value: str) -> str:
            return value

        assert registry.get("echo") is echo
        assert "echo" not in get_registry()
