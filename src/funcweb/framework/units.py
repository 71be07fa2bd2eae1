"""Unit shapes and the generic base classes users may subclass.

A unit is any callable of one of three shapes.  Plain callables are
classified from their signature; classes may instead subclass one of the
parameterized bases below, which also lets the type introspector read the
element types straight from ``__orig_bases__``::

    class Uppercase(Function[str, str]):
        def __call__(self, value: str) -> str:
            return value.upper()
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Generic, TypeVar

from funcweb.core.errors import IntrospectionError

I = TypeVar("I")  # noqa: E741
O = TypeVar("O")  # noqa: E741


class Supplier(ABC, Generic[O]):
    """Produces values; takes no input."""

    @abstractmethod
    def __call__(self) -> Any: ...


class Function(ABC, Generic[I, O]):
    """Maps input values to output values."""

    @abstractmethod
    def __call__(self, value: Any) -> Any: ...


class Consumer(ABC, Generic[I]):
    """Accepts input values; returns nothing."""

    @abstractmethod
    def __call__(self, value: Any) -> None: ...


class UnitShape(str, Enum):
    """The three recognised unit shapes."""

    SUPPLIER = "supplier"
    FUNCTION = "function"
    CONSUMER = "consumer"

    @property
    def base(self) -> type:
        return _SHAPE_BASES[self]

    @property
    def arity(self) -> int:
        """Number of top-level generic parameters of the shape."""
        return 2 if self is UnitShape.FUNCTION else 1

    @classmethod
    def detect(cls, unit: Any) -> UnitShape:
        """Classify ``unit`` by base class, falling back to its signature.

        Raises:
            IntrospectionError: ``unit`` is not a recognised shape.
        """
        for shape, base in _SHAPE_BASES.items():
            if isinstance(unit, base):
                return shape
        if not callable(unit):
            raise IntrospectionError(f"{unit!r} is not callable")

        try:
            signature = inspect.signature(unit)
        except (TypeError, ValueError) as e:
            raise IntrospectionError(f"Cannot inspect signature of {unit!r}", cause=e) from e

        required = [
            p
            for p in signature.parameters.values()
            if p.default is p.empty and p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
        ]
        if not required:
            return cls.SUPPLIER
        if len(required) == 1:
            if signature.return_annotation in (None, "None"):
                return cls.CONSUMER
            return cls.FUNCTION
        raise IntrospectionError(
            f"{unit!r} takes {len(required)} required arguments; units take at most one"
        )


_SHAPE_BASES: dict[UnitShape, type] = {
    UnitShape.SUPPLIER: Supplier,
    UnitShape.FUNCTION: Function,
    UnitShape.CONSUMER: Consumer,
}


__all__ = ["Supplier", "Function", "Consumer", "UnitShape"]
