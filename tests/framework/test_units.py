"""
Tests for unit shape detection.
"""

from __future__ import annotations

import pytest

from funcweb.core.errors import IntrospectionError
from funcweb.framework.units import Consumer, Function, Supplier, UnitShape


class Counter(Supplier[int]):
    def __call__(self) -> int:
        return 1


class Double(Function[int, int]):
    def __call__(self, value: int) -> int:
        return value * 2


class Sink(Consumer[str]):
    def __call__(self, value: str) -> None:
        pass


class TestDetectByBase:
    @pytest.mark.parametrize(
        ("unit", "shape"),
        [(Counter(), UnitShape.SUPPLIER), (Double(), UnitShape.FUNCTION), (Sink(), UnitShape.CONSUMER)],
    )
    def test_base_classes(self, unit, shape):
        assert UnitShape.detect(unit) is shape


class TestDetectBySignature:
    def test_no_arguments_is_supplier(self):
        def now() -> str:
            return "now"

        assert UnitShape.detect(now) is UnitShape.SUPPLIER

    def test_one_argument_is_function(self):
        assert UnitShape.detect(lambda value: value) is UnitShape.FUNCTION

    def test_none_return_is_consumer(self):
        def log(value: str) -> None:
            pass

        assert UnitShape.detect(log) is UnitShape.CONSUMER

    def test_defaulted_arguments_do_not_count(self):
        def greet(value: str, punctuation: str = "!") -> str:
            return value + punctuation

        assert UnitShape.detect(greet) is UnitShape.FUNCTION

    def test_two_required_arguments_rejected(self):
        def add(a: int, b: int) -> int:
            return a + b

        with pytest.raises(IntrospectionError, match="2 required arguments"):
            UnitShape.detect(add)

    def test_not_callable(self):
        with pytest.raises(IntrospectionError, match="not callable"):
            UnitShape.detect("uppercase")


class TestShapeProperties:
    def test_arity(self):
        assert UnitShape.FUNCTION.arity == 2
        assert UnitShape.SUPPLIER.arity == 1
        assert UnitShape.CONSUMER.arity == 1

    def test_base(self):
        assert UnitShape.CONSUMER.base is Consumer
