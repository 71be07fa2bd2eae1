"""
Lazy asynchronous streams.

:class:`Stream` is the calling convention between the HTTP layer and the
registered units: a lazy, possibly infinite sequence with a single
subscriber per instance.  Completion is ``StopAsyncIteration``; an error is
the exception raised out of ``__anext__``.  Cancelling a subscription
(``aclose()``) closes the upstream async generator so the producing unit
sees ``GeneratorExit`` and can release its resources.

Streams built from a materialized collection (:meth:`Stream.from_iterable`,
:meth:`Stream.just`) may be iterated any number of times.  Every other
stream raises :class:`~funcweb.core.errors.StreamError` on a second
subscription.

Examples:
    >>> import asyncio
    >>> asyncio.run(Stream.just("a", "b").map(str.upper).collect())
    ['A', 'B']

Tags:
    streams, async, reactive, funcweb

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import AsyncIterable, AsyncIterator, Callable, Iterable, Iterator
from typing import Any, Generic, TypeVar

from funcweb.core.errors import StreamError

T = TypeVar("T")
R = TypeVar("R")

_EXHAUSTED = object()


class Stream(Generic[T]):
    """Single-subscriber lazy stream of ``T``."""

    def __init__(
        self,
        factory: Callable[[], AsyncIterator[T]],
        *,
        items: list[T] | None = None,
    ) -> None:
        self._factory = factory
        self._items = items
        self._subscribed = False
        self._iterator: AsyncIterator[T] | None = None

    # ── Construction ─────────────────────────────────────────────────────

    @classmethod
    def from_iterable(cls, items: Iterable[T]) -> Stream[T]:
        """Materialize ``items``; the resulting stream is restartable."""
        materialized = list(items)

        async def _gen() -> AsyncIterator[T]:
            for item in materialized:
                yield item

        return cls(_gen, items=materialized)

    @classmethod
    def just(cls, *items: T) -> Stream[T]:
        return cls.from_iterable(items)

    @classmethod
    def empty(cls) -> Stream[Any]:
        return cls.from_iterable(())

    @classmethod
    def error(cls, exc: BaseException) -> Stream[Any]:
        """A stream that fails with ``exc`` on first pull."""

        async def _gen() -> AsyncIterator[Any]:
            raise exc
            yield  # pragma: no cover

        return cls(_gen)

    @classmethod
    def from_async(cls, source: AsyncIterable[T]) -> Stream[T]:
        """Wrap an existing async iterable without buffering it."""
        if isinstance(source, Stream):
            return source

        def _factory() -> AsyncIterator[T]:
            return source.__aiter__()

        return cls(_factory)

    @classmethod
    def from_iterator(cls, source: Iterator[T]) -> Stream[T]:
        """Wrap a synchronous iterator lazily.

        Each pull runs ``next()`` on a worker thread, so a blocking generator
        never stalls the event loop.  Cancelling the subscription closes the
        generator.
        """

        async def _gen() -> AsyncIterator[T]:
            try:
                while True:
                    item = await asyncio.to_thread(next, source, _EXHAUSTED)
                    if item is _EXHAUSTED:
                        return
                    yield item
            finally:
                close = getattr(source, "close", None)
                if close is not None:
                    close()

        return cls(_gen)

    @classmethod
    def lift(cls, value: Any) -> Stream[Any]:
        """Coerce a unit's stream-shaped result into a :class:`Stream`."""
        if isinstance(value, Stream):
            return value
        if isinstance(value, AsyncIterable):
            return cls.from_async(value)
        if isinstance(value, Iterator):
            return cls.from_iterator(value)
        raise StreamError(f"Expected a stream, got {type(value).__name__}")

    # ── Subscription ─────────────────────────────────────────────────────

    @property
    def materialized(self) -> bool:
        return self._items is not None

    @property
    def items(self) -> list[T]:
        """The backing collection of a materialized stream."""
        if self._items is None:
            raise StreamError("Stream is not backed by a collection")
        return self._items

    def __aiter__(self) -> AsyncIterator[T]:
        if self._subscribed and self._items is None:
            raise StreamError("Stream already has a subscriber")
        self._subscribed = True
        self._iterator = self._factory().__aiter__()
        return self._iterator

    async def aclose(self) -> None:
        """Cancel the active subscription, closing the upstream producer."""
        iterator, self._iterator = self._iterator, None
        close = getattr(iterator, "aclose", None)
        if close is not None:
            await close()

    # ── Operators ────────────────────────────────────────────────────────

    def map(self, fn: Callable[[T], Any]) -> Stream[Any]:
        """Apply ``fn`` element-wise; awaitable results are awaited.

        An exception from ``fn`` terminates the mapped stream at that
        element.  Closing the mapped stream closes this one.
        """
        upstream = self

        async def _gen() -> AsyncIterator[Any]:
            try:
                async for item in upstream:
                    result = fn(item)
                    if inspect.isawaitable(result):
                        result = await result
                    yield result
            finally:
                await upstream.aclose()

        return Stream(_gen)

    async def collect(self) -> list[T]:
        """Drain the stream into a list."""
        return [item async for item in self]

    async def prefetch(self) -> Stream[T]:
        """Pull the first element now and return a stream replaying it.

        An error on the first pull is raised here instead of surfacing
        after a consumer has started writing output.
        """
        iterator = self.__aiter__()
        try:
            head = await iterator.__anext__()
        except StopAsyncIteration:
            await self.aclose()
            return Stream.empty()
        except BaseException:
            await self.aclose()
            raise

        upstream = self

        async def _gen() -> AsyncIterator[T]:
            try:
                yield head
                while True:
                    try:
                        item = await iterator.__anext__()
                    except StopAsyncIteration:
                        return
                    yield item
            finally:
                await upstream.aclose()

        return Stream(_gen)

    async def first(self) -> T | None:
        """First element, or ``None`` for an empty stream; cancels the rest."""
        try:
            async for item in self:
                return item
            return None
        finally:
            await self.aclose()

    def __repr__(self) -> str:
        kind = f"items={len(self._items)}" if self._items is not None else "lazy"
        return f"Stream({kind})"


__all__ = ["Stream"]
