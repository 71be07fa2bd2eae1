"""
Structured error types for funcweb.

Every failure the handler-mapping core can raise is a :class:`FuncWebError`
subclass.  Each error carries a category for routing (startup diagnostics vs
per-request HTTP mapping), a structured :class:`ErrorContext`, and an
optional chained cause.

Manifesto:
    - **Typed hierarchy:** One error type per failure boundary
    - **Rich context:** Errors name the unit, path and element type involved
    - **Error chaining:** The original exception is kept as ``cause``

Architecture:
    ::

        FuncWebError
        ├── IntrospectionError      (startup: types cannot be resolved)
        ├── RegistryError
        │   ├── DuplicateUnitError
        │   ├── RegistryFrozenError
        │   └── UnitNotFoundError
        ├── RouteConflictError      (startup: two routes on one path)
        ├── CodecError              (request: 400)
        │   └── CoercionError       (request: 400)
        ├── UnitError               (request: 500)
        └── StreamError
            └── StreamAbortedError  (mid-stream: connection closed)

Tags:
    error-handling, exception-hierarchy, error-context, funcweb

Doc-Types:
    api-reference
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for logging and HTTP mapping."""

    INTROSPECTION = "INTROSPECTION"  # Type resolution at startup
    REGISTRY = "REGISTRY"            # Registration and lookup
    ROUTING = "ROUTING"              # Route synthesis and publication
    CODEC = "CODEC"                  # Body decode, value coercion
    UNIT = "UNIT"                    # Exceptions raised by user units
    STREAM = "STREAM"                # Stream protocol violations
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Attributes:
        unit: Registered name of the unit involved
        path: URL path being published or served
        element_type: Name of the element type being resolved or decoded
        metadata: Additional key-value pairs
    """

    unit: str | None = None
    path: str | None = None
    element_type: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["unit", "path", "element_type"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class FuncWebError(Exception):
    """
    Base exception for all funcweb errors.

    Subclasses set ``default_category`` so call sites only pass a message.

    Examples:
        >>> error = FuncWebError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(unit="uppercase").context.unit
        'uppercase'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> FuncWebError:
        """
        Add context to this error (fluent API).

        Usage:
            raise CodecError("Bad body").with_context(unit="uppercase")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# STARTUP ERRORS
# =============================================================================


class IntrospectionError(FuncWebError):
    """A unit's element types cannot be resolved from its metadata."""

    default_category = ErrorCategory.INTROSPECTION


class RegistryError(FuncWebError):
    """Registration or lookup failure in the unit registry."""

    default_category = ErrorCategory.REGISTRY


class DuplicateUnitError(RegistryError):
    """A canonical name or alias is already taken."""

    def __init__(self, name: str, **kwargs: Any):
        super().__init__(f"Unit '{name}' is already registered", **kwargs)
        self.unit_name = name


class RegistryFrozenError(RegistryError):
    """Registration attempted after routes were published."""


class UnitNotFoundError(RegistryError):
    """No unit is registered under the requested name."""

    def __init__(self, name: str, available: list[str] | None = None, **kwargs: Any):
        message = f"Unit '{name}' not found"
        if available:
            message += f". Available: {', '.join(available)}"
        super().__init__(message, **kwargs)
        self.unit_name = name


class RouteConflictError(FuncWebError):
    """Two routes resolve to the same method and path."""

    default_category = ErrorCategory.ROUTING

    def __init__(self, method: str, path: str, **kwargs: Any):
        super().__init__(f"Route {method} {path} is already registered", **kwargs)
        self.method = method
        self.path = path


# =============================================================================
# REQUEST ERRORS
# =============================================================================


class CodecError(FuncWebError):
    """Request body could not be decoded into the unit's input type."""

    default_category = ErrorCategory.CODEC


class CoercionError(CodecError):
    """A path value could not be coerced into the unit's input type."""

    def __init__(self, value: str, target: type, **kwargs: Any):
        name = getattr(target, "__name__", repr(target))
        super().__init__(f"Cannot convert {value!r} to {name}", **kwargs)
        self.value = value
        self.target = target


class UnitError(FuncWebError):
    """A user unit raised before the response started."""

    default_category = ErrorCategory.UNIT


class StreamError(FuncWebError):
    """Stream protocol violation, e.g. a second subscriber."""

    default_category = ErrorCategory.STREAM


class StreamAbortedError(StreamError):
    """The output stream failed after the response had started.

    The status line is already on the wire, so the body is truncated and
    the connection closed.
    """


__all__ = [
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
