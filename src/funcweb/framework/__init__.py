"""
funcweb framework: unit registry, type introspection, stream adapters.

Quick start::

    from funcweb.framework import register_unit

    @register_unit("uppercase")
    def uppercase(value: str) -> str:
        return value.upper()
"""

from funcweb.framework.adapters import StreamConsumer, StreamFunction, StreamSupplier, UnitProcessor
from funcweb.framework.coercion import ValueCoercer
from funcweb.framework.introspection import TypeIntrospector
from funcweb.framework.metadata import (
    MethodMetadata,
    ResolvedTypeMetadata,
    SourceFileMetadata,
    TypeNode,
)
from funcweb.framework.registry import (
    UnitRecord,
    UnitRegistry,
    clear_registry,
    get_registry,
    register_unit,
)
from funcweb.framework.units import Consumer, Function, Supplier, UnitShape

__all__ = [
    "Supplier",
    "Function",
    "Consumer",
    "UnitShape",
    "UnitRecord",
    "UnitRegistry",
    "get_registry",
    "clear_registry",
    "register_unit",
    "MethodMetadata",
    "SourceFileMetadata",
    "ResolvedTypeMetadata",
    "TypeNode",
    "TypeIntrospector",
    "UnitProcessor",
    "StreamSupplier",
    "StreamFunction",
    "StreamConsumer",
    "ValueCoercer",
]
