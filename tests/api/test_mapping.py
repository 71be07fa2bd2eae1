"""
Tests for route synthesis and publication.
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.routing import APIRoute

from funcweb.api.mapping import FunctionHandlerMapping, build_path, normalize_prefix
from funcweb.core.errors import RegistryFrozenError, RouteConflictError
from funcweb.framework.metadata import ResolvedTypeMetadata, TypeNode


def uppercase(value: str) -> str:
    return value.upper()


def words() -> str:
    return "hello"


def log(value: str) -> None:
    pass


def _route_keys(mapping: FunctionHandlerMapping) -> list[tuple[str, str]]:
    return [(spec.method, spec.path) for spec in mapping.routes]


class TestPaths:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("", ""), (None, ""), ("/", ""), ("api", "/api"), ("/api/", "/api"), ("/api//", "/api")],
    )
    def test_normalize_prefix(self, raw, expected):
        assert normalize_prefix(raw) == expected

    def test_build_path(self):
        assert build_path("", "uppercase") == "/uppercase"
        assert build_path("/api", "uppercase") == "/api/uppercase"
        assert build_path("/api", "uppercase", single=True) == "/api/uppercase/{input}"

    def test_leading_slashes_collapsed(self):
        assert build_path("/api", "//uppercase") == "/api/uppercase"


class TestRoutes:
    def test_routes_per_shape(self, registry):
        registry.register("uppercase", uppercase)
        registry.register("words", words)
        registry.register("log", log)
        mapping = FunctionHandlerMapping(registry)
        assert _route_keys(mapping) == [
            ("POST", "/uppercase"),
            ("GET", "/uppercase/{input}"),
            ("GET", "/words"),
            ("POST", "/log"),
        ]

    def test_aliases_get_routes(self, registry):
        registry.register("uppercase", uppercase, aliases=["upper"])
        mapping = FunctionHandlerMapping(registry, "/api")
        assert ("POST", "/api/upper") in _route_keys(mapping)
        assert ("GET", "/api/upper/{input}") in _route_keys(mapping)
        delegates = {spec.delegate for spec in mapping.routes}
        assert len(delegates) == 1

    def test_names_colliding_after_normalization(self, registry):
        registry.register("uppercase", uppercase)
        registry.register("/uppercase", uppercase)
        with pytest.raises(RouteConflictError) as exc:
            FunctionHandlerMapping(registry).routes
        assert exc.value.path == "/uppercase"

    def test_introspection_failure_is_skipped(self, registry):
        registry.register("uppercase", uppercase)
        registry.register(
            "broken",
            uppercase,
            metadata=ResolvedTypeMetadata((TypeNode("no_such_module.Type"),)),
        )
        mapping = FunctionHandlerMapping(registry)
        assert _route_keys(mapping) == [("POST", "/uppercase"), ("GET", "/uppercase/{input}")]
        assert [e.context.unit for e in mapping.diagnostics] == ["broken"]

    def test_summaries(self, registry):
        registry.register("uppercase", uppercase)
        summary = FunctionHandlerMapping(registry).summaries()[0]
        assert summary.method == "POST"
        assert summary.shape == "function"
        assert summary.input_type == "str"
        assert summary.output_type == "str"


class TestPublish:
    def test_routes_inserted_ahead_of_existing(self, registry):
        registry.register("uppercase", uppercase)
        app = FastAPI()

        @app.get("/{anything}")
        def fallback(anything: str):
            return {"fallback": anything}

        FunctionHandlerMapping(registry).publish(app)
        assert app.router.routes[0].path == "/uppercase"
        assert app.state.function_mapping.registry is registry

    def test_conflict_with_existing_route(self, registry):
        registry.register("uppercase", uppercase)
        app = FastAPI()

        @app.post("/uppercase")
        def existing():
            return {}

        with pytest.raises(RouteConflictError):
            FunctionHandlerMapping(registry).publish(app)

    def test_publish_freezes_registry(self, registry):
        registry.register("uppercase", uppercase)
        FunctionHandlerMapping(registry).publish(FastAPI())
        with pytest.raises(RegistryFrozenError):
            registry.register("words", words)

    def test_unit_shadows_documentation_routes(self, registry):
        registry.register("docs", words)
        app = FastAPI()
        FunctionHandlerMapping(registry).publish(app)
        docs_routes = [r for r in app.router.routes if getattr(r, "path", None) == "/docs"]
        assert len(docs_routes) == 2
        assert isinstance(docs_routes[0], APIRoute)
        assert not isinstance(docs_routes[1], APIRoute)
