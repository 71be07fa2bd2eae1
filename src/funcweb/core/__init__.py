"""
Core primitives for funcweb: streams, errors, logging, settings.

Nothing in this package imports FastAPI; the HTTP layer lives in
:mod:`funcweb.api`.
"""

from funcweb.core.errors import (
    CodecError,
    CoercionError,
    DuplicateUnitError,
    ErrorCategory,
    ErrorContext,
    FuncWebError,
    IntrospectionError,
    RegistryError,
    RegistryFrozenError,
    RouteConflictError,
    StreamAbortedError,
    StreamError,
    UnitError,
    UnitNotFoundError,
)
from funcweb.core.logging import configure_logging, get_logger
from funcweb.core.streams import Stream

__all__ = [
    "Stream",
    "configure_logging",
    "get_logger",
    "ErrorCategory",
    "ErrorContext",
    "FuncWebError",
    "IntrospectionError",
    "RegistryError",
    "DuplicateUnitError",
    "RegistryFrozenError",
    "UnitNotFoundError",
    "RouteConflictError",
    "CodecError",
    "CoercionError",
    "UnitError",
    "StreamError",
    "StreamAbortedError",
]
