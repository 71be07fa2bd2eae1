"""
JSON codec for unit streams.

Request bodies are JSON arrays decoded into a materialized list of the
unit's input element type; responses are encoded incrementally as a JSON
array, one chunk per element, in arrival order.

Decode failures (malformed JSON, an element of the wrong type) raise
:class:`~funcweb.core.errors.CodecError`.  Encoding failures after the
first chunk raise :class:`~funcweb.core.errors.StreamAbortedError`: the
status line is already sent, so the body is truncated.

Tags:
    codec, json, pydantic, streaming, funcweb

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import pydantic_core
from pydantic import PydanticSchemaGenerationError, ValidationError

from funcweb.core.errors import CodecError, StreamAbortedError
from funcweb.core.logging import get_logger
from funcweb.core.streams import Stream
from funcweb.framework.coercion import type_adapter

logger = get_logger(__name__)

JSON_MEDIA_TYPE = "application/json"


def _type_name(element_type: Any) -> str:
    return getattr(element_type, "__name__", repr(element_type))


def decode_list(body: bytes, element_type: Any = object) -> list[Any]:
    """Decode a JSON array body into a list of ``element_type``.

    Raises:
        CodecError: the body is empty, not JSON, not an array, or holds an
            element that does not validate as ``element_type``.
    """
    name = _type_name(element_type)
    if not body.strip():
        raise CodecError("Request body is empty").with_context(element_type=name)

    try:
        adapter = type_adapter(list[element_type])
    except PydanticSchemaGenerationError:
        logger.debug("codec_untyped_fallback", element_type=name)
        adapter = type_adapter(list[Any])

    try:
        return adapter.validate_json(body)
    except ValidationError as e:
        errors = [
            {
                "code": err["type"].upper(),
                "message": err["msg"],
                "field": ".".join(str(part) for part in err["loc"]) or None,
            }
            for err in e.errors(include_url=False)
        ]
        raise CodecError(
            f"Cannot decode request body as a JSON array of {name}", cause=e
        ).with_context(element_type=name, errors=errors)


def encode_value(value: Any) -> bytes:
    """Encode one element (pydantic models, dataclasses and builtins)."""
    try:
        return pydantic_core.to_json(value)
    except pydantic_core.PydanticSerializationError as e:
        raise CodecError(f"Cannot encode {type(value).__name__} as JSON", cause=e) from e


async def encode_array(stream: Stream[Any]) -> AsyncIterator[bytes]:
    """Encode ``stream`` as a streaming JSON array.

    Closing this generator (client disconnect) closes ``stream``, which
    cancels the producing unit.
    """
    count = 0
    try:
        yield b"["
        async for item in stream:
            chunk = encode_value(item)
            yield chunk if count == 0 else b"," + chunk
            count += 1
        yield b"]"
    except Exception as e:
        logger.error(
            "stream_aborted",
            elements_sent=count,
            error_type=type(e).__name__,
            error_message=str(e),
        )
        raise StreamAbortedError(
            f"Output stream failed after {count} element(s)", cause=e
        ) from e
    finally:
        await stream.aclose()
