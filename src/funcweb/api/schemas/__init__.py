"""Pydantic schemas for the funcweb HTTP surface."""

from funcweb.api.schemas.common import ErrorDetail, ProblemDetail, RouteSummary

__all__ = ["ErrorDetail", "ProblemDetail", "RouteSummary"]
