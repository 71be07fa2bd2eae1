"""
Exception handlers: funcweb errors to RFC 7807 responses.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from funcweb.api.schemas.common import ErrorDetail, ProblemDetail
from funcweb.core.errors import (
    CodecError,
    FuncWebError,
    StreamError,
    UnitError,
    UnitNotFoundError,
)
from funcweb.core.logging import get_logger

logger = get_logger(__name__)

# ── Error class → HTTP status mapping ────────────────────────────────────

ERROR_STATUS: dict[type[FuncWebError], int] = {
    CodecError: 400,
    UnitNotFoundError: 404,
    UnitError: 500,
    StreamError: 500,
}


def status_for_error(exc: FuncWebError) -> int:
    """Resolve an error to HTTP status via its class hierarchy, defaulting to 500."""
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 500


def problem_response(
    *,
    status: int,
    title: str | None = None,
    detail: str = "",
    instance: str = "",
    errors: list[dict[str, Any]] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build a RFC 7807 JSON error response."""
    body = ProblemDetail(
        title=title or HTTPStatus(status).phrase,
        status=status,
        detail=detail,
        instance=instance,
        errors=[ErrorDetail(**e) for e in errors or ()],
    )
    return JSONResponse(
        status_code=status,
        content=body.model_dump(),
        media_type="application/problem+json",
        headers=headers,
    )


def _debug(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings is not None and settings.debug)


async def funcweb_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render a :class:`FuncWebError` raised before the response started."""
    assert isinstance(exc, FuncWebError)
    status = status_for_error(exc)
    log = logger.warning if status < 500 else logger.error
    log("request_failed", status=status, path=request.url.path, **exc.to_dict())

    errors = exc.context.metadata.get("errors") if isinstance(exc, CodecError) else None
    detail = exc.message if status < 500 or _debug(request) else "The function failed."
    return problem_response(
        status=status,
        detail=detail,
        instance=request.url.path,
        errors=errors,
    )


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Router-level errors (no route, wrong method) as problem details."""
    assert isinstance(exc, StarletteHTTPException)
    return problem_response(
        status=exc.status_code,
        detail=str(exc.detail),
        instance=request.url.path,
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions: 500 with ProblemDetail."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error_type=type(exc).__name__,
        error_message=str(exc),
    )
    return problem_response(
        status=500,
        title="Internal Server Error",
        detail=str(exc) if _debug(request) else "An unexpected error occurred.",
        instance=request.url.path,
    )


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FuncWebError, funcweb_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


__all__ = [
    "ERROR_STATUS",
    "install_exception_handlers",
    "problem_response",
    "status_for_error",
    "unhandled_exception_handler",
]
