"""
Request dispatch for unit routes.

Each published route gets an endpoint built here.  The endpoint stores its
delegate on ``request.state`` under :data:`HANDLER_ATTRIBUTE`, where the
body reader finds it to learn the element type to decode, then runs the
delegate and renders its output:

    POST  <prefix>/<fn>         body -> Stream[I] -> fn -> JSON array of O
    GET   <prefix>/<supplier>   supplier -> JSON array of O
    GET   <prefix>/<fn>/{input} coerce(input) -> fn -> single JSON O
    POST  <prefix>/<consumer>   body -> Stream[I] -> consumer -> 202 echo

The first output element is pulled before the response starts, so a unit
that fails immediately produces a 500 problem response.  Failures after
that truncate the body (see :mod:`funcweb.api.codec`).
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Request
from fastapi.responses import Response, StreamingResponse

from funcweb.api.codec import JSON_MEDIA_TYPE, decode_list, encode_array, encode_value
from funcweb.api.delegates import (
    ConsumerDelegate,
    DelegateHandler,
    FunctionDelegate,
    Operation,
    SupplierDelegate,
)
from funcweb.core.errors import CodecError, UnitError
from funcweb.core.logging import LogContext, get_logger
from funcweb.core.streams import Stream

logger = get_logger(__name__)

HANDLER_ATTRIBUTE = "funcweb.api.mapping.HANDLER"

Endpoint = Callable[..., Awaitable[Response]]


def publish_handler(request: Request, delegate: DelegateHandler) -> None:
    setattr(request.state, HANDLER_ATTRIBUTE, delegate)


def current_handler(request: Request) -> DelegateHandler:
    """The delegate the router matched for ``request``."""
    return getattr(request.state, HANDLER_ATTRIBUTE)


async def read_body_stream(request: Request) -> Stream[Any]:
    """Decode the request body as a materialized stream of the unit's input type."""
    delegate = current_handler(request)
    element_type = delegate.input_type() or object
    body = await request.body()
    try:
        items = decode_list(body, element_type)
    except CodecError as e:
        e.with_context(unit=delegate.source, path=request.url.path)
        raise
    return Stream.from_iterable(items)


async def run_unit(delegate: DelegateHandler, call: Callable[[], Awaitable[Any]]) -> Any:
    """Await ``call``; unit failures become :class:`UnitError` (500)."""
    try:
        return await call()
    except (CodecError, UnitError):
        raise
    except Exception as e:
        logger.error(
            "dispatch.failed",
            unit=delegate.source,
            error_type=type(e).__name__,
            error_message=str(e),
        )
        raise UnitError(f"Unit '{delegate.source}' failed: {e}", cause=e).with_context(
            unit=delegate.source
        ) from e


def _stream_response(stream: Stream[Any]) -> StreamingResponse:
    return StreamingResponse(encode_array(stream), media_type=JSON_MEDIA_TYPE)


# ── Endpoint factories ──────────────────────────────────────────────────


def supplier_endpoint(delegate: SupplierDelegate) -> Endpoint:
    async def endpoint(request: Request) -> Response:
        publish_handler(request, delegate)
        async with LogContext(unit=delegate.source):
            logger.debug("dispatch.supply", path=request.url.path)

            async def call() -> Stream[Any]:
                output = await delegate.get()
                return await output.prefetch()

            return _stream_response(await run_unit(delegate, call))

    return endpoint


def function_endpoint(delegate: FunctionDelegate) -> Endpoint:
    async def endpoint(request: Request) -> Response:
        publish_handler(request, delegate)
        async with LogContext(unit=delegate.source):
            stream = await read_body_stream(request)
            logger.debug("dispatch.apply", path=request.url.path, elements=len(stream.items))

            async def call() -> Stream[Any]:
                output = await delegate.apply(stream)
                return await output.prefetch()

            return _stream_response(await run_unit(delegate, call))

    return endpoint


def single_endpoint(delegate: FunctionDelegate) -> Endpoint:
    async def endpoint(request: Request, input: str) -> Response:
        publish_handler(request, delegate)
        async with LogContext(unit=delegate.source):
            logger.debug("dispatch.single", path=request.url.path)
            result = await run_unit(delegate, lambda: delegate.single(input))
            return Response(content=encode_value(result), media_type=JSON_MEDIA_TYPE)

    return endpoint


def consumer_endpoint(delegate: ConsumerDelegate) -> Endpoint:
    async def endpoint(request: Request) -> Response:
        publish_handler(request, delegate)
        async with LogContext(unit=delegate.source):
            stream = await read_body_stream(request)
            logger.debug("dispatch.accept", path=request.url.path, elements=len(stream.items))
            accepted = await run_unit(delegate, lambda: delegate.accept(stream))
            return Response(
                content=encode_value(accepted),
                status_code=202,
                media_type=JSON_MEDIA_TYPE,
            )

    return endpoint


_FACTORIES: dict[str, Callable[[Any], Endpoint]] = {
    "get": supplier_endpoint,
    "apply": function_endpoint,
    "single": single_endpoint,
    "accept": consumer_endpoint,
}


def build_endpoint(delegate: DelegateHandler, operation: Operation) -> Endpoint:
    """The FastAPI endpoint that runs ``operation`` on ``delegate``."""
    endpoint = _FACTORIES[operation.name](delegate)
    endpoint.__name__ = f"{operation.name}_{delegate.source.strip('/').replace('/', '_')}"
    return endpoint


__all__ = [
    "HANDLER_ATTRIBUTE",
    "build_endpoint",
    "current_handler",
    "read_body_stream",
    "run_unit",
]
