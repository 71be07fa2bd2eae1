"""
HTTP-facing delegates around registered units.

One delegate per unit, chosen by shape:

    ========  =================  ==========================================
    Shape     Delegate           Operations
    ========  =================  ==========================================
    Supplier  SupplierDelegate   ``get``    GET  <prefix>/<name>
    Function  FunctionDelegate   ``apply``  POST <prefix>/<name>
                                 ``single`` GET  <prefix>/<name>/{input}
    Consumer  ConsumerDelegate   ``accept`` POST <prefix>/<name>  (202)
    ========  =================  ==========================================

A delegate holds the registry handle and the unit's name only.  The unit
processor (which owns the wrapper memo) and the wrapped unit are looked up
on first use and cached, so delegates can be built before the registry's
collaborators exist.

Tags:
    funcweb, api, delegates, dispatch

Doc-Types:
    api-reference
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, ClassVar

from funcweb.core.streams import Stream
from funcweb.framework.adapters import UnitProcessor, invoke_stream
from funcweb.framework.coercion import ValueCoercer
from funcweb.framework.registry import UnitRegistry
from funcweb.framework.units import UnitShape


@dataclass(frozen=True)
class Operation:
    """One HTTP-exposed method of a delegate."""

    name: str
    method: str
    single: bool = False
    status_code: int = 200


class DelegateHandler:
    """Shared plumbing: names, lazy handler lookup, input conversion."""

    shape: ClassVar[UnitShape]
    operations: ClassVar[tuple[Operation, ...]] = ()

    def __init__(
        self,
        registry: UnitRegistry,
        source: str,
        coercer: ValueCoercer | None = None,
    ) -> None:
        self._registry = registry
        self.source = source
        self._coercer = coercer or ValueCoercer()
        self._processor: UnitProcessor | None = None

    def names(self) -> list[str]:
        """Canonical name followed by aliases."""
        return self._registry.names_for(self.source)

    def processor(self) -> UnitProcessor:
        if self._processor is None:
            self._processor = self._registry.processor
        return self._processor

    def handler(self) -> Any:
        return self.processor().handler(self.source)

    def input_type(self) -> type | None:
        if self.shape is UnitShape.SUPPLIER:
            return None
        return self._registry.introspector.find_input_type(self.source)

    def output_type(self) -> type | None:
        if self.shape is UnitShape.CONSUMER:
            return None
        return self._registry.introspector.find_output_type(self.source)

    def convert(self, value: str) -> Any:
        return self._coercer.convert(value, self.input_type() or object)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.source!r})"


class SupplierDelegate(DelegateHandler):
    shape = UnitShape.SUPPLIER
    operations = (Operation("get", "GET"),)

    async def get(self) -> Stream[Any]:
        return await invoke_stream(self.handler())


class FunctionDelegate(DelegateHandler):
    shape = UnitShape.FUNCTION
    operations = (
        Operation("apply", "POST"),
        Operation("single", "GET", single=True),
    )

    async def apply(self, stream: Stream[Any]) -> Stream[Any]:
        return await invoke_stream(self.handler(), stream)

    async def single(self, value: str) -> Any:
        """Apply the function to one path value; ``None`` if it emits nothing."""
        converted = self.convert(value)
        output = await invoke_stream(self.handler(), Stream.just(converted))
        return await output.first()


class ConsumerDelegate(DelegateHandler):
    shape = UnitShape.CONSUMER
    operations = (Operation("accept", "POST", status_code=202),)

    async def accept(self, stream: Stream[Any]) -> list[Any]:
        """Feed ``stream`` to the consumer; returns the input for echoing."""
        result = self.handler()(stream)
        if inspect.isawaitable(result):
            await result
        return stream.items if stream.materialized else []


DELEGATES: dict[UnitShape, type[DelegateHandler]] = {
    UnitShape.SUPPLIER: SupplierDelegate,
    UnitShape.FUNCTION: FunctionDelegate,
    UnitShape.CONSUMER: ConsumerDelegate,
}


def create_delegate(
    registry: UnitRegistry,
    source: str | DelegateHandler,
    coercer: ValueCoercer | None = None,
) -> DelegateHandler:
    """Pick the delegate for ``source`` by its registered shape."""
    if isinstance(source, DelegateHandler):
        return source
    shape = registry.shape_for(source)
    return DELEGATES[shape](registry, registry.canonical_name(source), coercer)


__all__ = [
    "Operation",
    "DelegateHandler",
    "SupplierDelegate",
    "FunctionDelegate",
    "ConsumerDelegate",
    "create_delegate",
]
