"""
Route synthesis: one set of HTTP routes per registered unit name.

Manifesto:
    Every unit name (canonical or alias) becomes a URL under one
    configurable prefix, with the HTTP method picked by the unit's shape.
    Unit routes are inserted ahead of whatever the host app already
    routes, so a unit path always wins over default handlers; an exact
    method and path clash is a startup error, never a silent overwrite.

Examples:
    >>> normalize_prefix("api/")
    '/api'
    >>> build_path("/api", "/uppercase", single=True)
    '/api/uppercase/{input}'

Tags:
    routing, fastapi, functions, funcweb

Doc-Types:
    api-reference
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import Any

from fastapi import APIRouter, FastAPI

from funcweb.api.delegates import DelegateHandler, Operation, create_delegate
from funcweb.api.dispatch import HANDLER_ATTRIBUTE, build_endpoint
from funcweb.api.schemas.common import RouteSummary
from funcweb.core.errors import IntrospectionError, RouteConflictError
from funcweb.core.logging import get_logger
from funcweb.framework.coercion import ValueCoercer
from funcweb.framework.registry import UnitRegistry

logger = get_logger(__name__)

_ARRAY_BODY = {
    "requestBody": {
        "required": True,
        "content": {"application/json": {"schema": {"type": "array", "items": {}}}},
    }
}


def normalize_prefix(prefix: str | None) -> str:
    """Strip trailing slashes; ensure a leading one unless empty."""
    prefix = (prefix or "").rstrip("/")
    if prefix and not prefix.startswith("/"):
        prefix = "/" + prefix
    return prefix


def build_path(prefix: str, name: str, single: bool = False) -> str:
    path = f"{prefix}/{name.lstrip('/')}"
    return f"{path}/{{input}}" if single else path


@dataclass(frozen=True)
class RouteSpec:
    """One synthesized route."""

    method: str
    path: str
    delegate: DelegateHandler
    operation: Operation

    @property
    def key(self) -> tuple[str, str]:
        return self.method, self.path

    def summary(self) -> RouteSummary:
        input_type = self.delegate.input_type()
        output_type = self.delegate.output_type()
        return RouteSummary(
            method=self.method,
            path=self.path,
            unit=self.delegate.source,
            shape=self.delegate.shape.value,
            operation=self.operation.name,
            input_type=input_type.__name__ if input_type else None,
            output_type=output_type.__name__ if output_type else None,
        )


class FunctionHandlerMapping:
    """Synthesizes and publishes the routes for every unit in a registry."""

    def __init__(
        self,
        registry: UnitRegistry,
        prefix: str | None = "",
        coercer: ValueCoercer | None = None,
    ) -> None:
        self.registry = registry
        self.prefix = normalize_prefix(prefix)
        self._coercer = coercer or ValueCoercer()
        self.diagnostics: list[IntrospectionError] = []

    def delegates(self) -> list[DelegateHandler]:
        """Delegates for every unit whose element types resolve.

        Units that fail introspection are logged, recorded in
        :attr:`diagnostics` and left unpublished.
        """
        delegates: list[DelegateHandler] = []
        self.diagnostics.clear()
        for name in self.registry.names():
            try:
                self.registry.record_for(name)
            except IntrospectionError as e:
                logger.error("unit_publication_aborted", unit=name, error=e.message)
                self.diagnostics.append(e)
                continue
            delegates.append(create_delegate(self.registry, name, self._coercer))
        return delegates

    @cached_property
    def routes(self) -> list[RouteSpec]:
        specs: list[RouteSpec] = []
        seen: dict[tuple[str, str], RouteSpec] = {}
        for delegate in self.delegates():
            for name in delegate.names():
                for operation in delegate.operations:
                    route = RouteSpec(
                        method=operation.method,
                        path=build_path(self.prefix, name, operation.single),
                        delegate=delegate,
                        operation=operation,
                    )
                    if route.key in seen:
                        raise RouteConflictError(route.method, route.path).with_context(
                            unit=delegate.source,
                            conflicts_with=seen[route.key].delegate.source,
                        )
                    seen[route.key] = route
                    specs.append(route)
        return specs

    def _check_existing(self, app: FastAPI) -> None:
        """Reject clashes with the host's own routes.

        FastAPI's documentation routes are defaults, not host routes: a unit
        published at the same path shadows them.
        """
        defaults = {
            app.openapi_url,
            app.docs_url,
            app.redoc_url,
            app.swagger_ui_oauth2_redirect_url,
        } - {None}
        taken = {
            (method, route.path)
            for route in app.router.routes
            for method in (getattr(route, "methods", None) or ())
        }
        for route in self.routes:
            if route.key not in taken:
                continue
            if route.path in defaults:
                logger.warning(
                    "default_route_shadowed",
                    method=route.method,
                    path=route.path,
                    unit=route.delegate.source,
                )
                continue
            raise RouteConflictError(route.method, route.path).with_context(
                unit=route.delegate.source
            )

    def publish(self, app: FastAPI) -> list[RouteSpec]:
        """Freeze the registry and insert unit routes ahead of ``app``'s own."""
        self.registry.freeze()
        self._check_existing(app)

        router = APIRouter()
        for route in self.routes:
            extra: dict[str, Any] | None = _ARRAY_BODY if route.method == "POST" else None
            router.add_api_route(
                route.path,
                build_endpoint(route.delegate, route.operation),
                methods=[route.method],
                status_code=route.operation.status_code,
                response_model=None,
                tags=["functions"],
                summary=f"{route.delegate.shape.value} {route.delegate.source}",
                openapi_extra=extra,
            )
            logger.info(
                "route_published",
                method=route.method,
                path=route.path,
                unit=route.delegate.source,
                operation=route.operation.name,
            )

        app.router.routes[0:0] = router.routes
        app.state.function_mapping = self
        return self.routes

    def summaries(self) -> list[RouteSummary]:
        return [route.summary() for route in self.routes]

    def __repr__(self) -> str:
        return f"FunctionHandlerMapping(prefix={self.prefix!r}, units={len(self.registry)})"


__all__ = [
    "HANDLER_ATTRIBUTE",
    "FunctionHandlerMapping",
    "RouteSpec",
    "build_path",
    "normalize_prefix",
]
