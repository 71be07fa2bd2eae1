"""Registration metadata: where a unit's generic types come from.

Every registered unit carries one :class:`MetadataSource`.  Each variant
knows how to produce the unit's raw top-level type arguments; the
:mod:`~funcweb.framework.introspection` reducer then normalizes them without
caring which variant produced them.

Variants:
    - :class:`MethodMetadata`: a factory callable whose return annotation
      is the parameterized unit type (``-> Function[Stream[str], Stream[str]]``).
    - :class:`SourceFileMetadata`: a source file or module plus the name of
      a class subclassing a parameterized unit base.
    - :class:`ResolvedTypeMetadata`: a pre-resolved :class:`TypeNode` tree,
      built from a plain callable's type hints by default.

Tags:
    introspection, typing, metadata, funcweb

Doc-Types:
    api-reference
"""

from __future__ import annotations

import collections.abc
import importlib
import importlib.util
import inspect
import sys
import typing
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, get_args, get_origin, runtime_checkable

from funcweb.core.errors import IntrospectionError
from funcweb.core.streams import Stream
from funcweb.framework.units import Consumer, Function, Supplier, UnitShape

# What a unit can be handed as its input stream.
INPUT_STREAM_TYPES: tuple[Any, ...] = (
    Stream,
    collections.abc.AsyncIterator,
    collections.abc.AsyncIterable,
    collections.abc.AsyncGenerator,
)

# Outputs may also be blocking iterators; they are pulled on a worker thread.
STREAM_TYPES: tuple[Any, ...] = INPUT_STREAM_TYPES + (
    collections.abc.Iterator,
    collections.abc.Generator,
)

UNIT_BASES = (Supplier, Function, Consumer)


def is_stream_type(hint: Any) -> bool:
    """True if ``hint`` is the stream wrapper, bare or parameterized."""
    return hint in STREAM_TYPES or get_origin(hint) in STREAM_TYPES


def is_input_stream_type(hint: Any) -> bool:
    return hint in INPUT_STREAM_TYPES or get_origin(hint) in INPUT_STREAM_TYPES


@runtime_checkable
class MetadataSource(Protocol):
    """Produces the raw top-level type arguments of a unit."""

    def type_args(self) -> list[Any]: ...


def _hints(obj: Any) -> dict[str, Any]:
    try:
        return typing.get_type_hints(obj)
    except TypeError:
        # partials and other callables without annotations
        return {}
    except Exception as e:
        raise IntrospectionError(f"Cannot resolve type hints of {obj!r}", cause=e) from e


# =============================================================================
# (i) METHOD DESCRIPTOR
# =============================================================================


@dataclass(frozen=True)
class MethodMetadata:
    """A factory callable with a parameterized return annotation.

    ``Callable[[A], B]`` flattens to ``[A, B]``; a ``None`` result (a
    consumer) is dropped.
    """

    factory: Any

    def return_type(self) -> Any:
        hints = _hints(self.factory)
        if "return" not in hints:
            raise IntrospectionError(f"Factory {self.factory!r} declares no return type")
        return hints["return"]

    def type_args(self) -> list[Any]:
        declared = self.return_type()
        args = get_args(declared)
        if get_origin(declared) is collections.abc.Callable and args:
            params, result = args
            flattened = list(params) if isinstance(params, list) else []
            if result not in (None, type(None)):
                flattened.append(result)
            return flattened
        if not args:
            raise IntrospectionError(f"Return type {declared!r} is not parameterized")
        return list(args)


# =============================================================================
# (ii) SOURCE FILE DESCRIPTOR
# =============================================================================


@dataclass
class SourceFileMetadata:
    """A class to reflect, located by source file path or module name."""

    source: str
    class_name: str
    _cls: type | None = field(default=None, repr=False, compare=False)

    @classmethod
    def for_class(cls, unit_class: type) -> SourceFileMetadata:
        return cls(unit_class.__module__, unit_class.__qualname__, _cls=unit_class)

    def _load_module(self) -> Any:
        path = Path(self.source)
        if path.suffix == ".py":
            if not path.is_file():
                raise IntrospectionError(f"Source file {self.source} does not exist")
            module_name = f"funcweb_units_{path.stem}"
            spec = importlib.util.spec_from_file_location(module_name, path)
            if spec is None or spec.loader is None:
                raise IntrospectionError(f"Cannot load source file {self.source}")
            module = importlib.util.module_from_spec(spec)
            sys.modules[module_name] = module
            spec.loader.exec_module(module)
            return module
        return importlib.import_module(self.source)

    def load_class(self) -> type:
        if self._cls is not None:
            return self._cls
        try:
            target: Any = self._load_module()
            for part in self.class_name.split("."):
                target = getattr(target, part)
        except IntrospectionError:
            raise
        except Exception as e:
            raise IntrospectionError(
                f"Cannot load class {self.class_name} from {self.source}", cause=e
            ) from e
        if not inspect.isclass(target):
            raise IntrospectionError(f"{self.class_name} in {self.source} is not a class")
        self._cls = target
        return target

    def type_args(self) -> list[Any]:
        unit_class = self.load_class()
        for klass in unit_class.__mro__:
            for base in getattr(klass, "__orig_bases__", ()):
                if get_origin(base) in UNIT_BASES:
                    return list(get_args(base))
        raise IntrospectionError(f"Class {unit_class.__qualname__} is not parameterized")


# =============================================================================
# (iii) PRE-RESOLVED TYPE TREE
# =============================================================================


@dataclass(frozen=True)
class TypeNode:
    """One node of a resolved generic type tree."""

    type: Any
    generics: tuple[TypeNode, ...] = ()

    @classmethod
    def of(cls, hint: Any) -> TypeNode:
        return cls(hint, tuple(cls.of(arg) for arg in get_args(hint) if arg is not Ellipsis))

    @classmethod
    def stream_of(cls, hint: Any) -> TypeNode:
        """Node for a unit parameter: stream hints as-is, plain hints wrapped."""
        if is_stream_type(hint):
            return cls.of(hint)
        return cls(Stream[hint], (cls.of(hint),))


@dataclass(frozen=True)
class ResolvedTypeMetadata:
    """A pre-resolved tree: one top-level node per unit type parameter."""

    tree: tuple[TypeNode, ...]

    @classmethod
    def from_callable(cls, unit: Any, shape: UnitShape) -> ResolvedTypeMetadata:
        """Build the tree from the type hints of ``unit`` (or its ``__call__``)."""
        target = unit if inspect.isroutine(unit) or inspect.isclass(unit) else unit.__call__
        hints = _hints(target)
        try:
            params = [
                p for p in inspect.signature(target).parameters.values()
                if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
            ]
        except (TypeError, ValueError) as e:
            raise IntrospectionError(f"Cannot inspect signature of {unit!r}", cause=e) from e

        input_hint = hints.get(params[0].name, object) if params else object
        output_hint = hints.get("return", object)

        if shape is UnitShape.SUPPLIER:
            nodes = (TypeNode.stream_of(output_hint),)
        elif shape is UnitShape.CONSUMER:
            nodes = (TypeNode.stream_of(input_hint),)
        else:
            nodes = (TypeNode.stream_of(input_hint), TypeNode.stream_of(output_hint))
        return cls(nodes)

    def type_args(self) -> list[Any]:
        return [node.generics[0].type if node.generics else node.type for node in self.tree]


RegistrationMetadata = MethodMetadata | SourceFileMetadata | ResolvedTypeMetadata


def metadata_for_unit(unit: Any, shape: UnitShape) -> RegistrationMetadata:
    """Default metadata for a unit registered without explicit metadata."""
    if isinstance(unit, UNIT_BASES):
        return SourceFileMetadata.for_class(type(unit))
    return ResolvedTypeMetadata.from_callable(unit, shape)


__all__ = [
    "INPUT_STREAM_TYPES",
    "STREAM_TYPES",
    "is_input_stream_type",
    "is_stream_type",
    "MetadataSource",
    "MethodMetadata",
    "SourceFileMetadata",
    "TypeNode",
    "ResolvedTypeMetadata",
    "RegistrationMetadata",
    "metadata_for_unit",
]
