"""Stream adapters: lift plain units into the streaming calling convention.

A plain unit works on single values (``str -> str``).  The HTTP layer only
speaks streams, so each plain unit is wrapped once in the adapter for its
shape:

    - :class:`StreamSupplier`: ``() -> Stream[O]``, one element per subscription
    - :class:`StreamFunction`: ``Stream[I] -> Stream[O]``, element-wise, in order
    - :class:`StreamConsumer`: ``Stream[I] -> awaitable``, element-wise, in order

Units that already take and return streams are used as-is.

Synchronous units run on a worker thread (``asyncio.to_thread``) so a slow
unit never blocks the event loop; coroutine results are awaited.
"""

from __future__ import annotations

import asyncio
import inspect
import threading
from collections.abc import AsyncIterable, AsyncIterator, Iterator
from typing import TYPE_CHECKING, Any

from funcweb.core.logging import get_logger
from funcweb.core.streams import Stream
from funcweb.framework.units import UnitShape

if TYPE_CHECKING:
    from funcweb.framework.registry import UnitRegistry

logger = get_logger(__name__)


def _is_async_callable(fn: Any) -> bool:
    if inspect.iscoroutinefunction(fn):
        return True
    call = getattr(fn, "__call__", None)
    return call is not None and inspect.iscoroutinefunction(call)


async def call_unit(fn: Any, *args: Any) -> Any:
    """Invoke a plain unit, off the event loop when it is synchronous."""
    if _is_async_callable(fn):
        return await fn(*args)
    result = await asyncio.to_thread(fn, *args)
    if inspect.isawaitable(result):
        result = await result
    return result


async def invoke_stream(handler: Any, *args: Any) -> Stream[Any]:
    """Call a stream-shaped handler and normalize its result to a Stream."""
    result = handler(*args)
    if inspect.isawaitable(result):
        result = await result
    return Stream.lift(result)


class StreamSupplier:
    """Streaming view of a plain supplier."""

    def __init__(self, inner: Any) -> None:
        self.inner = inner

    def produce(self) -> Stream[Any]:
        inner = self.inner

        async def _gen() -> AsyncIterator[Any]:
            value = await call_unit(inner)
            if value is not None:
                yield value

        return Stream(_gen)

    __call__ = produce

    def __repr__(self) -> str:
        return f"StreamSupplier({self.inner!r})"


class StreamFunction:
    """Streaming view of a plain function, applied element-wise.

    A result that is itself a stream (a generator, say) is expanded in
    place, so each input element contributes zero or more outputs.
    """

    def __init__(self, inner: Any) -> None:
        self.inner = inner

    def apply(self, stream: Stream[Any]) -> Stream[Any]:
        inner = self.inner

        async def _gen() -> AsyncIterator[Any]:
            try:
                async for value in stream:
                    result = await call_unit(inner, value)
                    if not isinstance(result, (AsyncIterable, Iterator)):
                        yield result
                        continue
                    expanded = Stream.lift(result)
                    try:
                        async for item in expanded:
                            yield item
                    finally:
                        await expanded.aclose()
            finally:
                await stream.aclose()

        return Stream(_gen)

    __call__ = apply

    def __repr__(self) -> str:
        return f"StreamFunction({self.inner!r})"


class StreamConsumer:
    """Streaming view of a plain consumer; completes with its input."""

    def __init__(self, inner: Any) -> None:
        self.inner = inner

    async def consume(self, stream: Stream[Any]) -> None:
        try:
            async for value in stream:
                await call_unit(self.inner, value)
        finally:
            await stream.aclose()

    __call__ = consume

    def __repr__(self) -> str:
        return f"StreamConsumer({self.inner!r})"


ADAPTERS: dict[UnitShape, type] = {
    UnitShape.SUPPLIER: StreamSupplier,
    UnitShape.FUNCTION: StreamFunction,
    UnitShape.CONSUMER: StreamConsumer,
}


class UnitProcessor:
    """Hands out the stream-shaped handler for each registered unit.

    Wrapping happens lazily on first request and at most once per unit;
    the memo is guarded by a lock for that first population only.
    """

    def __init__(self, registry: UnitRegistry) -> None:
        self._registry = registry
        self._handlers: dict[str, Any] = {}
        self._wrappers: dict[int, Any] = {}
        self._lock = threading.Lock()

    def wrap(self, unit: Any, shape: UnitShape) -> Any:
        """Adapter for ``unit``; the same wrapper is returned on every call."""
        key = id(unit)
        wrapper = self._wrappers.get(key)
        if wrapper is None:
            with self._lock:
                wrapper = self._wrappers.get(key)
                if wrapper is None:
                    wrapper = ADAPTERS[shape](unit)
                    self._wrappers[key] = wrapper
        return wrapper

    def handler(self, source: str) -> Any:
        """The (possibly wrapped) unit registered under ``source``."""
        name = self._registry.canonical_name(source)
        handler = self._handlers.get(name)
        if handler is None:
            unit = self._registry.get(name)
            shape = self._registry.shape_for(name)
            native = self._registry.introspector.is_native_stream(name)
            handler = unit if native else self.wrap(unit, shape)
            with self._lock:
                handler = self._handlers.setdefault(name, handler)
            logger.debug("unit_handler_resolved", unit=name, shape=shape.value, native_stream=native)
        return handler


__all__ = [
    "StreamSupplier",
    "StreamFunction",
    "StreamConsumer",
    "UnitProcessor",
    "call_unit",
    "invoke_stream",
]
