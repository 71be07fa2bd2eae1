"""Settings for the funcweb HTTP surface.

All values can be overridden via environment variables prefixed with
``FUNCTIONS_WEB_`` (``FUNCTIONS_WEB_PATH=/api``) or a ``.env`` file.  The
``path`` field is the ``functions.web.path`` option: the URL prefix under
which every unit route is published.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    The route prefix is read once at app creation; the router never
    consults the environment at request time.

Examples:
    >>> from funcweb.core.settings import FunctionWebSettings
    >>> FunctionWebSettings(path="/api").path
    '/api'
    >>> FunctionWebSettings.from_properties({"functions.web.path": "fn"}).path
    'fn'

Tags:
    settings, configuration, pydantic, environment, funcweb

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PROPERTY_PREFIX = "functions.web."


class FunctionWebSettings(BaseSettings):
    """Settings for the funcweb REST surface.

    Order of precedence (highest → lowest):
        1. Explicit keyword arguments
        2. Environment variables (``FUNCTIONS_WEB_PATH``, etc.)
        3. ``.env`` file
        4. Defaults below
    """

    model_config = SettingsConfigDict(
        env_prefix="FUNCTIONS_WEB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Routing ──────────────────────────────────────────────────────────
    path: str = Field(default="", description="URL prefix for all unit routes")

    # ── Server ───────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8080, description="Bind port")
    debug: bool = Field(default=False, description="Expose exception detail in 500 bodies")

    # ── Observability ────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", description="Log level")
    json_logs: bool | None = Field(
        default=None,
        description="JSON log output; None auto-detects from the terminal",
    )

    # ── OpenAPI ──────────────────────────────────────────────────────────
    title: str = Field(default="funcweb", description="OpenAPI title")
    version: str = Field(default="0.1.0", description="OpenAPI version string")

    @classmethod
    def from_properties(cls, properties: Mapping[str, Any]) -> FunctionWebSettings:
        """Build settings from dotted property keys.

        Keys outside the ``functions.web.`` namespace are ignored, so a
        whole application property map can be passed through.
        """
        values = {
            key[len(PROPERTY_PREFIX):].replace(".", "_").replace("-", "_"): value
            for key, value in properties.items()
            if key.startswith(PROPERTY_PREFIX)
        }
        return cls(**values)
