"""
Structured logging for funcweb.

One structlog configuration per process; every module asks for its own
logger and logs an event name plus keyword fields::

    logger = get_logger(__name__)
    logger.info("route_published", method="POST", path="/uppercase")

Request-scoped fields (``request_id`` from the middleware, ``unit`` from
the dispatcher) are carried in contextvars and merged into every event
emitted while they are bound.

Architecture:
    ::

        configure_logging(level, json_format, service)
            │
            ▼
        merge_contextvars → TimeStamper(iso) → add_log_level
            → stack/exc info → service.name
            → [JSON: ECS field names → JSONRenderer]
            → [console: ConsoleRenderer]

Tags:
    logging, structlog, observability, funcweb

Doc-Types:
    api-reference
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_service = {"name": "funcweb"}

# structlog key -> ECS key
_ECS_FIELDS = {"timestamp": "@timestamp", "level": "log.level"}


def _stamp_service(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service.name", _service["name"])
    return event_dict


def _rename_ecs_fields(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Rename structlog's default keys to their ECS equivalents."""
    for key, ecs_key in _ECS_FIELDS.items():
        if key in event_dict:
            event_dict[ecs_key] = event_dict.pop(key)
    return event_dict


def _build_processors(json_format: bool, add_timestamp: bool) -> list[Processor]:
    chain: list[Processor] = [structlog.contextvars.merge_contextvars]
    if add_timestamp:
        chain.append(structlog.processors.TimeStamper(fmt="iso"))
    chain += [
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _stamp_service,
    ]
    if json_format:
        chain += [
            structlog.processors.format_exc_info,
            _rename_ecs_fields,
            structlog.processors.JSONRenderer(),
        ]
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    return chain


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "funcweb",
    add_timestamp: bool = True,
) -> None:
    """Configure structlog (and the stdlib root logger uvicorn writes to).

    Events go to stderr so command output on stdout stays machine-readable.

    Args:
        level: Minimum level name, e.g. ``"DEBUG"`` or ``"WARNING"``
        json_format: JSON lines when True, console when False; when None,
            JSON unless stderr is a terminal
        service: Value of the ``service.name`` field
        add_timestamp: Prefix each event with an ISO timestamp
    """
    _service["name"] = service
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level!r}")
    if json_format is None:
        json_format = not sys.stderr.isatty()

    structlog.configure(
        processors=_build_processors(json_format, add_timestamp),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=numeric_level)


def get_logger(name: str | None = None) -> Any:
    """Structured logger; pass ``__name__`` to tag events with the module."""
    return structlog.get_logger(name) if name else structlog.get_logger()


def bind_context(**kwargs: Any) -> None:
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind fields for the duration of a ``with`` / ``async with`` block.

    Example:
        async with LogContext(unit="uppercase"):
            logger.info("dispatch.apply")
    """

    def __init__(self, **fields: Any) -> None:
        self.fields = fields

    def __enter__(self) -> LogContext:
        bind_context(**self.fields)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        unbind_context(*self.fields)

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, *exc_info: Any) -> None:
        self.__exit__(*exc_info)


__all__ = [
    "LogContext",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "unbind_context",
]
