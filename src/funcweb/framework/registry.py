"""Unit registry for registering and discovering units.

Manifesto:
    A central registry lets the HTTP layer discover units at startup by
    name without import-time coupling to the modules that define them.

The registry stores each unit under one canonical name plus any aliases,
together with its shape and the metadata its element types are resolved
from.  Routes are published from a frozen snapshot: once
:meth:`UnitRegistry.freeze` has been called, further registration raises
:class:`~funcweb.core.errors.RegistryFrozenError`.

Usage::

    from funcweb.framework.registry import register_unit

    @register_unit("uppercase", aliases=["upper"])
    def uppercase(value: str) -> str:
        return value.upper()

Tags:
    funcweb, framework, registry, unit-discovery, lookup

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, get_origin

from funcweb.core.errors import (
    DuplicateUnitError,
    RegistryError,
    RegistryFrozenError,
    UnitNotFoundError,
)
from funcweb.core.logging import get_logger
from funcweb.framework.metadata import (
    MethodMetadata,
    RegistrationMetadata,
    SourceFileMetadata,
    metadata_for_unit,
)
from funcweb.framework.units import UnitShape

if TYPE_CHECKING:
    from funcweb.framework.adapters import UnitProcessor
    from funcweb.framework.introspection import TypeIntrospector

logger = get_logger(__name__)


@dataclass(frozen=True)
class UnitRecord:
    """A registered unit together with its resolved element types."""

    unit: Any
    name: str
    aliases: tuple[str, ...]
    shape: UnitShape
    input_type: type | None
    output_type: type | None
    native_stream: bool

    @property
    def names(self) -> tuple[str, ...]:
        return (self.name, *self.aliases)


@dataclass
class _Registration:
    name: str
    unit: Any
    shape: UnitShape
    aliases: tuple[str, ...]
    metadata: RegistrationMetadata


class UnitRegistry:
    """Holds units by name and hands out their metadata."""

    def __init__(self) -> None:
        self._registrations: dict[str, _Registration] = {}
        self._alias_index: dict[str, str] = {}
        self._records: dict[str, UnitRecord] = {}
        self._frozen = False
        self._introspector: TypeIntrospector | None = None
        self._processor: UnitProcessor | None = None

    # ── Registration ─────────────────────────────────────────────────────

    def register(
        self,
        name: str,
        unit: Any,
        *,
        shape: UnitShape | None = None,
        aliases: Iterable[str] = (),
        metadata: RegistrationMetadata | None = None,
    ) -> Any:
        """Register ``unit`` under ``name``; returns the unit unchanged."""
        if self._frozen:
            raise RegistryFrozenError(f"Cannot register '{name}': registry is frozen")
        if not name or not name.strip("/"):
            raise RegistryError("Unit name must be a non-empty string")

        alias_tuple = tuple(a for a in dict.fromkeys(aliases) if a != name)
        for taken in (name, *alias_tuple):
            if taken in self._registrations or taken in self._alias_index:
                raise DuplicateUnitError(taken)

        shape = shape or UnitShape.detect(unit)
        metadata = metadata or metadata_for_unit(unit, shape)

        self._registrations[name] = _Registration(name, unit, shape, alias_tuple, metadata)
        for alias in alias_tuple:
            self._alias_index[alias] = name

        logger.debug(
            "unit_registered",
            name=name,
            shape=shape.value,
            aliases=list(alias_tuple),
            metadata=type(metadata).__name__,
        )
        return unit

    def register_factory(
        self,
        name: str,
        factory: Callable[[], Any],
        *,
        shape: UnitShape | None = None,
        aliases: Iterable[str] = (),
    ) -> Any:
        """Register the unit built by ``factory``.

        The factory's return annotation supplies the element types, e.g.
        ``def uppercase() -> Function[Stream[str], Stream[str]]``.
        """
        metadata = MethodMetadata(factory)
        if shape is None:
            origin = get_origin(metadata.return_type())
            shape = next((s for s in UnitShape if s.base is origin), None)
        unit = factory()
        return self.register(name, unit, shape=shape, aliases=aliases, metadata=metadata)

    def register_source(
        self,
        name: str,
        source: str,
        class_name: str,
        *,
        aliases: Iterable[str] = (),
    ) -> Any:
        """Load ``class_name`` from a source file or module and register an instance."""
        metadata = SourceFileMetadata(source, class_name)
        unit = metadata.load_class()()
        return self.register(name, unit, aliases=aliases, metadata=metadata)

    def freeze(self) -> None:
        """Stop accepting registrations; called when routes are published."""
        if not self._frozen:
            self._frozen = True
            logger.debug("unit_registry_frozen", units=len(self._registrations))

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ── Lookup ───────────────────────────────────────────────────────────

    def _registration(self, name: str) -> _Registration:
        canonical = self._alias_index.get(name, name)
        if canonical not in self._registrations:
            raise UnitNotFoundError(name, available=self.names())
        return self._registrations[canonical]

    def units(self) -> Iterator[tuple[str, UnitShape, RegistrationMetadata]]:
        """Yield ``(name, shape, metadata)`` in registration order."""
        for reg in list(self._registrations.values()):
            yield reg.name, reg.shape, reg.metadata

    def get(self, name: str) -> Any:
        """Return the unit registered under a canonical name or alias."""
        return self._registration(name).unit

    def canonical_name(self, name: str) -> str:
        return self._registration(name).name

    def aliases(self, name: str) -> set[str]:
        return set(self._registration(name).aliases)

    def names_for(self, name: str) -> list[str]:
        """Canonical name followed by aliases, in registration order."""
        reg = self._registration(name)
        return [reg.name, *reg.aliases]

    def find_names(self, unit: Any) -> list[str]:
        """All names (canonical first, then aliases) bound to ``unit``."""
        names: list[str] = []
        for reg in self._registrations.values():
            if reg.unit is unit:
                names.append(reg.name)
                names.extend(reg.aliases)
        return names

    def metadata_for(self, name: str) -> RegistrationMetadata:
        return self._registration(name).metadata

    def shape_for(self, name: str) -> UnitShape:
        return self._registration(name).shape

    def names(self) -> list[str]:
        """Canonical names in registration order."""
        return list(self._registrations)

    def __contains__(self, name: object) -> bool:
        return name in self._registrations or name in self._alias_index

    def __len__(self) -> int:
        return len(self._registrations)

    # ── Introspection ────────────────────────────────────────────────────

    @property
    def introspector(self) -> TypeIntrospector:
        if self._introspector is None:
            from funcweb.framework.introspection import TypeIntrospector

            self._introspector = TypeIntrospector(self)
        return self._introspector

    @property
    def processor(self) -> UnitProcessor:
        if self._processor is None:
            from funcweb.framework.adapters import UnitProcessor

            self._processor = UnitProcessor(self)
        return self._processor

    def record_for(self, name: str) -> UnitRecord:
        """Resolve and memoize the :class:`UnitRecord` for ``name``.

        Raises:
            IntrospectionError: the unit's element types cannot be resolved.
        """
        reg = self._registration(name)
        if reg.name not in self._records:
            introspector = self.introspector
            self._records[reg.name] = UnitRecord(
                unit=reg.unit,
                name=reg.name,
                aliases=reg.aliases,
                shape=reg.shape,
                input_type=(
                    None if reg.shape is UnitShape.SUPPLIER
                    else introspector.find_input_type(reg.name)
                ),
                output_type=(
                    None if reg.shape is UnitShape.CONSUMER
                    else introspector.find_output_type(reg.name)
                ),
                native_stream=introspector.is_native_stream(reg.name),
            )
        return self._records[reg.name]


# =============================================================================
# DEFAULT (PROCESS-WIDE) REGISTRY
# =============================================================================

_default_registry = UnitRegistry()


def get_registry() -> UnitRegistry:
    """The process-wide registry used by :func:`register_unit`."""
    return _default_registry


def clear_registry() -> None:
    """Replace the process-wide registry with an empty one (for testing)."""
    global _default_registry
    _default_registry = UnitRegistry()


def register_unit(
    name: str | None = None,
    *,
    shape: UnitShape | None = None,
    aliases: Iterable[str] = (),
    registry: UnitRegistry | None = None,
) -> Callable[[Any], Any]:
    """Decorator registering a function or class instance as a unit.

    Decorating a class registers a fresh instance of it; the class itself
    is returned unchanged.
    """

    def decorator(unit: Any) -> Any:
        target = registry if registry is not None else get_registry()
        unit_name = name or getattr(unit, "__name__", None)
        if unit_name is None:
            raise RegistryError(f"Cannot derive a unit name from {unit!r}")
        if isinstance(unit, type):
            target.register(
                unit_name,
                unit(),
                shape=shape,
                aliases=aliases,
                metadata=SourceFileMetadata.for_class(unit),
            )
        else:
            target.register(unit_name, unit, shape=shape, aliases=aliases)
        return unit

    return decorator


__all__ = [
    "UnitRecord",
    "UnitRegistry",
    "get_registry",
    "clear_registry",
    "register_unit",
]
