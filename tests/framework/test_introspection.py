"""
Tests for element-type resolution and native-stream detection.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Generator, Iterator
from typing import Any, Optional, TypeVar

import pytest

from funcweb.core.errors import IntrospectionError
from funcweb.core.streams import Stream
from funcweb.framework.introspection import (
    find_type,
    probe_native_stream,
    reduce_type,
    resolve_class,
)
from funcweb.framework.metadata import (
    MethodMetadata,
    ResolvedTypeMetadata,
    SourceFileMetadata,
    TypeNode,
)
from funcweb.framework.units import Consumer, Function, Supplier, UnitShape

T = TypeVar("T")


class Order:
    pass


class ReverseStream(Function[Stream[str], Stream[str]]):
    def __call__(self, values: Stream[str]) -> Stream[str]:
        return values.map(lambda v: v[::-1])


class OrderSink(Consumer[Order]):
    def __call__(self, value: Order) -> None:
        pass


class TestReduce:
    def test_stream_unwrapped(self):
        assert reduce_type(Stream[int]) is int
        assert reduce_type(AsyncIterator[str]) is str

    def test_parameterized_reduced_to_origin(self):
        assert reduce_type(dict[str, int]) is dict
        assert reduce_type(Stream[list[int]]) is list

    def test_bare_stream_is_object(self):
        assert reduce_type(Stream) is object

    def test_plain_class_untouched(self):
        assert reduce_type(Order) is Order


class TestResolveClass:
    def test_any_and_none(self):
        assert resolve_class(Any) is object
        assert resolve_class(None) is object

    def test_unbound_typevar(self):
        assert resolve_class(T) is object

    def test_optional(self):
        assert resolve_class(Optional[int]) is int
        assert resolve_class(int | None) is int

    def test_wide_union_is_object(self):
        assert resolve_class(int | str) is object

    def test_forward_reference_string(self):
        assert resolve_class(f"{__name__}.Order") is Order
        assert resolve_class("int") is int

    def test_unknown_name(self):
        with pytest.raises(IntrospectionError, match="Cannot resolve type name"):
            resolve_class("no.such.module.Thing")


class TestFindType:
    def test_function_input_and_output(self):
        metadata = ResolvedTypeMetadata((TypeNode.of(Stream[str]), TypeNode.of(Stream[int])))
        assert find_type(metadata, 0) is str
        assert find_type(metadata, 1) is int

    def test_index_past_end_uses_first(self):
        metadata = ResolvedTypeMetadata((TypeNode.of(Stream[Order]),))
        assert find_type(metadata, 1) is Order

    def test_source_file_metadata(self):
        assert find_type(SourceFileMetadata.for_class(OrderSink), 0) is Order

    def test_source_file_by_path(self, tmp_path):
        source = tmp_path / "shouting.py"
        source.write_text(
            "from funcweb.framework.units import Function\n"
            "class Shout(Function[str, bytes]):\n"
            "    def __call__(self, value):\n"
            "        return value.upper().encode()\n"
        )
        metadata = SourceFileMetadata(str(source), "Shout")
        assert find_type(metadata, 0) is str
        assert find_type(metadata, 1) is bytes

    def test_missing_source_file(self, tmp_path):
        metadata = SourceFileMetadata(str(tmp_path / "missing.py"), "Shout")
        with pytest.raises(IntrospectionError, match="does not exist"):
            find_type(metadata, 0)

    def test_unparameterized_class(self):
        class Bare(Function):
            def __call__(self, value):
                return value

        with pytest.raises(IntrospectionError, match="not parameterized"):
            find_type(SourceFileMetadata.for_class(Bare), 0)

    def test_method_metadata(self):
        def factory() -> Function[Stream[Order], Stream[dict[str, int]]]:
            raise NotImplementedError

        metadata = MethodMetadata(factory)
        assert find_type(metadata, 0) is Order
        assert find_type(metadata, 1) is dict

    def test_method_metadata_callable(self):
        def factory() -> Callable[[str], int]:
            raise NotImplementedError

        assert MethodMetadata(factory).type_args() == [str, int]

    def test_method_metadata_without_return(self):
        def factory():
            raise NotImplementedError

        with pytest.raises(IntrospectionError, match="declares no return type"):
            MethodMetadata(factory).type_args()


class TestResolvedTree:
    def test_plain_function(self):
        def shout(value: str) -> str:
            return value

        metadata = ResolvedTypeMetadata.from_callable(shout, UnitShape.FUNCTION)
        assert metadata.type_args() == [str, str]

    def test_supplier_from_async_generator(self):
        async def ticks() -> AsyncIterator[int]:
            yield 1

        metadata = ResolvedTypeMetadata.from_callable(ticks, UnitShape.SUPPLIER)
        assert metadata.type_args() == [int]

    def test_unannotated_is_object(self):
        metadata = ResolvedTypeMetadata.from_callable(lambda v: v, UnitShape.FUNCTION)
        assert [resolve_class(reduce_type(t)) for t in metadata.type_args()] == [object, object]


class TestIntrospector:
    def test_memoized(self, registry):
        registry.register("sink", OrderSink())
        introspector = registry.introspector
        assert introspector.find_input_type("sink") is Order
        assert introspector.find_input_type("sink") is introspector.find_input_type("sink")

    def test_error_names_unit(self, registry):
        def broken(value: "NoSuchType") -> str:  # noqa: F821
            return value

        registry.register(
            "broken",
            broken,
            metadata=ResolvedTypeMetadata((TypeNode("missing.Type"), TypeNode.of(Stream[str]))),
        )
        with pytest.raises(IntrospectionError) as exc:
            registry.introspector.find_input_type("broken")
        assert exc.value.context.unit == "broken"

    def test_native_from_method_metadata(self, registry):
        def factory() -> Function[Stream[str], Stream[str]]:
            return ReverseStream()

        registry.register_factory("reverse", factory)
        assert registry.introspector.is_native_stream("reverse") is True

    def test_plain_from_method_metadata(self, registry):
        def factory() -> Function[str, str]:
            return lambda value: value

        registry.register_factory("identity", factory)
        assert registry.introspector.is_native_stream("identity") is False


class TestProbeNativeStream:
    def test_stream_base_class(self):
        assert probe_native_stream(ReverseStream(), UnitShape.FUNCTION) is True

    def test_plain_base_class(self):
        assert probe_native_stream(OrderSink(), UnitShape.CONSUMER) is False

    def test_async_generator_supplier(self):
        async def ticks():
            yield 1

        assert probe_native_stream(ticks, UnitShape.SUPPLIER) is True

    def test_stream_typed_consumer(self):
        async def sink(values: Stream[str]) -> None:
            pass

        assert probe_native_stream(sink, UnitShape.CONSUMER) is True

    def test_plain_function(self):
        def shout(value: str) -> str:
            return value

        assert probe_native_stream(shout, UnitShape.FUNCTION) is False

    def test_supplier_base_with_plain_type(self):
        class Greeting(Supplier[str]):
            def __call__(self) -> str:
                return "hi"

        assert probe_native_stream(Greeting(), UnitShape.SUPPLIER) is False


class TestBlockingIterators:
    def test_iterator_unwrapped(self):
        assert reduce_type(Iterator[int]) is int
        assert reduce_type(Generator[str, None, None]) is str

    def test_generator_supplier_is_native(self):
        def nums() -> Iterator[int]:
            yield from (1, 2, 3)

        assert probe_native_stream(nums, UnitShape.SUPPLIER) is True

    def test_unannotated_generator_supplier_is_native(self):
        def nums():
            yield 1

        assert probe_native_stream(nums, UnitShape.SUPPLIER) is True

    def test_iterator_returning_function_stays_plain(self):
        def explode(value: str) -> Iterator[str]:
            yield from value

        assert probe_native_stream(explode, UnitShape.FUNCTION) is False

    def test_iterator_consumer_stays_plain(self):
        def sink(values: Iterator[int]) -> None:
            pass

        assert probe_native_stream(sink, UnitShape.CONSUMER) is False

    def test_supplier_output_type(self, registry):
        def nums() -> Iterator[int]:
            yield from (1, 2, 3)

        registry.register("nums", nums)
        assert registry.introspector.find_output_type("nums") is int
        assert registry.introspector.is_native_stream("nums") is True
