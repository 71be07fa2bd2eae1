"""
FastAPI application factory.

``create_app()`` builds the app, installs middleware and exception
handlers, then publishes one route set per registered unit.

Manifesto:
    The app factory is the single composition root: the registry, the
    settings and the route mapping meet here, so units never touch
    ``FastAPI`` directly and the router never reads configuration at
    request time.

Tags:
    funcweb, api, app-factory, composition-root, FastAPI

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from funcweb.api.deps import get_settings
from funcweb.api.mapping import FunctionHandlerMapping
from funcweb.api.middleware import RequestIDMiddleware, TimingMiddleware, install_exception_handlers
from funcweb.core.logging import get_logger
from funcweb.core.settings import FunctionWebSettings
from funcweb.framework.coercion import ValueCoercer
from funcweb.framework.registry import UnitRegistry, get_registry

logger = get_logger("funcweb.api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup / shutdown log lines."""
    mapping: FunctionHandlerMapping = app.state.function_mapping
    logger.info(
        "funcweb_starting",
        version=app.version,
        prefix=mapping.prefix or "/",
        routes=len(mapping.routes),
        skipped_units=len(mapping.diagnostics),
    )
    yield
    logger.info("funcweb_stopping")


def create_app(
    settings: FunctionWebSettings | None = None,
    *,
    registry: UnitRegistry | None = None,
    coercer: ValueCoercer | None = None,
) -> FastAPI:
    """Build and return a FastAPI app serving every unit in ``registry``.

    Parameters
    ----------
    settings : FunctionWebSettings | None
        Override settings (useful for testing).  When ``None`` the cached
        singleton from :func:`get_settings` is used.
    registry : UnitRegistry | None
        Units to publish; defaults to the process-wide registry.  It is
        frozen once the routes are published.
    coercer : ValueCoercer | None
        String-to-type conversion for single-value GET inputs.

    Raises
    ------
    RouteConflictError
        Two units, or a unit and an existing route, claim the same
        method and path.
    """
    settings = settings or get_settings()
    registry = registry if registry is not None else get_registry()

    app = FastAPI(
        title=settings.title,
        version=settings.version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.dependency_overrides[get_settings] = lambda: settings

    # ── Middleware (outermost → innermost) ────────────────────────────
    app.add_middleware(TimingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Exception handlers ───────────────────────────────────────────
    install_exception_handlers(app)

    # ── Unit routes ──────────────────────────────────────────────────
    mapping = FunctionHandlerMapping(registry, settings.path, coercer)
    mapping.publish(app)
    return app
