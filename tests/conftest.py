"""
Shared pytest fixtures for funcweb tests.

This module provides:
- Registry cleanup for test isolation
- A fresh ``UnitRegistry`` per test
- A ``make_client`` factory building a TestClient over that registry

Usage:
    def test_uppercase(registry, make_client):
        registry.register("uppercase", str.upper, shape=UnitShape.FUNCTION)
        client = make_client()
        ...
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

# Ensure funcweb package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fastapi.testclient import TestClient  # noqa: E402

from funcweb.api.app import create_app  # noqa: E402
from funcweb.core.settings import FunctionWebSettings  # noqa: E402
from funcweb.framework.registry import UnitRegistry, clear_registry  # noqa: E402


@pytest.fixture(autouse=True)
def clean_unit_registry() -> Generator[None, None, None]:
    """Clear the process-wide registry before and after each test."""
    clear_registry()
    yield
    clear_registry()


@pytest.fixture
def registry() -> UnitRegistry:
    return UnitRegistry()


@pytest.fixture
def settings() -> FunctionWebSettings:
    return FunctionWebSettings(_env_file=None)


@pytest.fixture
def make_client(registry: UnitRegistry) -> Callable[..., TestClient]:
    """Build a TestClient publishing ``registry`` under ``path``."""

    def _make(path: str = "", **overrides) -> TestClient:
        app = create_app(
            FunctionWebSettings(_env_file=None, path=path, **overrides),
            registry=registry,
        )
        return TestClient(app, raise_server_exceptions=False)

    return _make
