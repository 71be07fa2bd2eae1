"""
FastAPI dependency injection: shared singletons.

Usage in host routers::

    from funcweb.api.deps import Mapping, Settings

    @router.get("/functions")
    def list_functions(mapping: Mapping, settings: Settings):
        ...

Tags:
    funcweb, api, dependency-injection, singletons

Doc-Types:
    api-reference
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request

from funcweb.api.mapping import FunctionHandlerMapping
from funcweb.core.settings import FunctionWebSettings

# ── Settings (singleton) ─────────────────────────────────────────────────


@lru_cache(maxsize=1)
def get_settings() -> FunctionWebSettings:
    """Cached settings, loaded once per process."""
    return FunctionWebSettings()


# ── Published routes ─────────────────────────────────────────────────────


def get_mapping(request: Request) -> FunctionHandlerMapping:
    """The mapping that published the unit routes of this app."""
    return request.app.state.function_mapping


Settings = Annotated[FunctionWebSettings, Depends(get_settings)]
Mapping = Annotated[FunctionHandlerMapping, Depends(get_mapping)]
