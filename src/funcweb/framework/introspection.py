"""
Type introspection for registered units.

Resolves the element type carried by a unit's input and output streams
from the unit's :mod:`~funcweb.framework.metadata`, and decides whether a
unit already speaks the streaming form.

Algorithm:
    1. Ask the metadata source for the raw top-level type vector ``T``.
    2. For index ``i`` take ``T[i]`` (or ``T[0]`` when ``i >= len(T)``, the
       single declared generic of a supplier or consumer).  A stream
       wrapper is replaced by its first type argument; anything still
       parameterized is reduced to its origin class.
    3. Resolve to a concrete class: forward-reference strings are imported,
       ``Any`` becomes ``object``, a ``TypeVar`` becomes its bound (or
       ``object``), ``Optional[X]`` becomes ``X``.

Results are memoized per unit name, so repeated calls return identical
answers.

Tags:
    introspection, typing, generics, funcweb

Doc-Types:
    api-reference
"""

from __future__ import annotations

import builtins
import importlib
import inspect
import threading
import types
import typing
from typing import TYPE_CHECKING, Any, TypeVar, get_args, get_origin

from funcweb.core.errors import IntrospectionError
from funcweb.core.logging import get_logger
from funcweb.framework.metadata import (
    MetadataSource,
    MethodMetadata,
    SourceFileMetadata,
    STREAM_TYPES,
    UNIT_BASES,
    is_input_stream_type,
    is_stream_type,
)
from funcweb.framework.units import UnitShape

if TYPE_CHECKING:
    from funcweb.framework.registry import UnitRegistry

logger = get_logger(__name__)

INPUT_INDEX = 0
OUTPUT_INDEX = 1


def reduce_type(hint: Any) -> Any:
    """Normalize one raw type argument (step 2)."""
    if is_stream_type(hint):
        args = get_args(hint)
        hint = args[0] if args else object
    if get_origin(hint) is not None and not _is_union(hint):
        hint = get_origin(hint)
    return hint


def _is_union(hint: Any) -> bool:
    return get_origin(hint) in (typing.Union, types.UnionType)


def resolve_class(hint: Any) -> type:
    """Resolve a reduced type argument to a concrete class (step 3)."""
    if isinstance(hint, str):
        hint = _import_name(hint)
    if isinstance(hint, typing.ForwardRef):
        hint = _import_name(hint.__forward_arg__)
    if hint is Any or hint is None:
        return object
    if isinstance(hint, TypeVar):
        return resolve_class(hint.__bound__) if hint.__bound__ is not None else object
    if _is_union(hint):
        members = [a for a in get_args(hint) if a is not type(None)]
        return resolve_class(reduce_type(members[0])) if len(members) == 1 else object
    if inspect.isclass(hint):
        return hint
    logger.debug("element_type_widened", hint=repr(hint))
    return object


def _import_name(name: str) -> Any:
    module_name, _, attr = name.rpartition(".")
    try:
        if not module_name:
            return getattr(builtins, attr)
        return getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as e:
        raise IntrospectionError(f"Cannot resolve type name '{name}'", cause=e) from e


def find_type(metadata: MetadataSource, index: int) -> type:
    """Element type at ``index`` of the unit described by ``metadata``."""
    raw = metadata.type_args()
    if not raw:
        raise IntrospectionError(f"{metadata!r} declares no type arguments")
    hint = raw[index] if index < len(raw) else raw[0]
    return resolve_class(reduce_type(hint))


class TypeIntrospector:
    """Resolves and memoizes element types for the units of one registry."""

    def __init__(self, registry: UnitRegistry) -> None:
        self._registry = registry
        self._types: dict[tuple[str, int], type] = {}
        self._native: dict[str, bool] = {}
        self._lock = threading.Lock()

    def _find(self, name: str, index: int) -> type:
        canonical = self._registry.canonical_name(name)
        key = (canonical, index)
        if key not in self._types:
            metadata = self._registry.metadata_for(canonical)
            try:
                resolved = find_type(metadata, index)
            except IntrospectionError as e:
                e.with_context(unit=canonical)
                raise
            with self._lock:
                self._types.setdefault(key, resolved)
            logger.debug(
                "element_type_resolved",
                unit=canonical,
                index=index,
                element_type=resolved.__name__,
            )
        return self._types[key]

    def find_input_type(self, name: str) -> type:
        return self._find(name, INPUT_INDEX)

    def find_output_type(self, name: str) -> type:
        return self._find(name, OUTPUT_INDEX)

    def is_native_stream(self, name: str) -> bool:
        """Whether the unit's declared input/output are already streams."""
        canonical = self._registry.canonical_name(name)
        if canonical not in self._native:
            shape = self._registry.shape_for(canonical)
            declared = self._has_stream_types(canonical, shape)
            native = declared if declared is not None else probe_native_stream(
                self._registry.get(canonical), shape
            )
            with self._lock:
                self._native.setdefault(canonical, native)
        return self._native[canonical]

    def _has_stream_types(self, name: str, shape: UnitShape) -> bool | None:
        """Decide from a method descriptor; ``None`` when undecidable."""
        metadata = self._registry.metadata_for(name)
        if not isinstance(metadata, MethodMetadata):
            return None
        return declares_streams(metadata.type_args(), shape)


def declares_streams(declared: list[Any], shape: UnitShape) -> bool:
    """Whether declared top-level types put every side of ``shape`` in stream form.

    Inputs must be asynchronous streams; a supplier or function may also
    produce a blocking iterator.
    """
    if len(declared) != shape.arity:
        return False
    if shape is UnitShape.SUPPLIER:
        return is_stream_type(declared[0])
    if shape is UnitShape.CONSUMER:
        return is_input_stream_type(declared[0])
    return is_input_stream_type(declared[0]) and is_stream_type(declared[1])


def probe_native_stream(unit: Any, shape: UnitShape) -> bool:
    """Inspect the unit itself when its metadata cannot decide.

    A generator function (sync or async) is a native supplier.  Otherwise a
    supplier is native when it returns a stream, and a function or consumer
    when it takes one.
    """
    if isinstance(unit, UNIT_BASES):
        try:
            declared = SourceFileMetadata.for_class(type(unit)).type_args()
        except IntrospectionError:
            declared = []
        if declares_streams(declared, shape):
            return True
    target = unit if inspect.isroutine(unit) else getattr(unit, "__call__", unit)
    if shape is UnitShape.SUPPLIER and (
        inspect.isasyncgenfunction(target) or inspect.isgeneratorfunction(target)
    ):
        return True
    try:
        hints = typing.get_type_hints(target)
    except Exception as e:
        logger.debug("native_stream_probe_failed", unit=repr(unit), error=str(e))
        return False
    try:
        params = [
            p for p in inspect.signature(target).parameters.values()
            if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
        ]
    except (TypeError, ValueError):
        params = []

    input_hint = hints.get(params[0].name) if params else None
    output_hint = hints.get("return")
    if shape is UnitShape.SUPPLIER:
        return is_stream_type(output_hint)
    return is_input_stream_type(input_hint)


__all__ = [
    "STREAM_TYPES",
    "TypeIntrospector",
    "declares_streams",
    "find_type",
    "reduce_type",
    "resolve_class",
    "probe_native_stream",
]
