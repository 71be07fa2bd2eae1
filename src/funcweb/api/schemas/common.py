"""
Common API schemas: RFC 7807 errors and route summaries.

Unit routes return the unit's own JSON payloads, so there is no success
envelope; every 4xx/5xx produced by funcweb itself is a
:class:`ProblemDetail`.

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# ── RFC 7807 Problem Detail ─────────────────────────────────────────────


class ErrorDetail(BaseModel):
    """Structured error detail for element-level decode errors."""

    code: str = Field(description="Machine-readable error code (e.g., 'INVALID_ELEMENT')")
    message: str = Field(description="Human-readable error description")
    field: str | None = Field(default=None, description="Location of the failing element, if any")


class ProblemDetail(BaseModel):
    """RFC 7807 «Problem Details for HTTP APIs».

    Example:
        {
            "type": "about:blank",
            "title": "Bad Request",
            "status": 400,
            "detail": "Cannot decode request body as a JSON array of int",
            "instance": "/uppercase",
            "errors": []
        }
    """

    type: str = Field(default="about:blank", description="Error type URI (usually 'about:blank')")
    title: str = Field(description="Short human-readable error summary")
    status: int = Field(description="HTTP status code (e.g., 400, 404, 500)")
    detail: str = Field(default="", description="Human-readable explanation of the error")
    instance: str = Field(default="", description="URI of the failing request")
    errors: list[ErrorDetail] = Field(
        default_factory=list,
        description="List of element-level error details",
    )


# ── Route listing ───────────────────────────────────────────────────────


class RouteSummary(BaseModel):
    """One published unit route, as listed by ``funcweb routes``."""

    method: str
    path: str
    unit: str
    shape: str
    operation: str
    input_type: str | None = None
    output_type: str | None = None
