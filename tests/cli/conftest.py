"""
CLI fixtures.

Commands configure structlog against the runner's captured streams, so
logger caching is switched off here and the defaults restored afterwards.
"""

from __future__ import annotations

import pytest
import structlog

import funcweb.core.logging as funcweb_logging


@pytest.fixture(autouse=True)
def logging_calls(monkeypatch):
    calls: list[dict] = []
    configure = funcweb_logging.configure_logging

    def recording_configure(**kwargs):
        calls.append(kwargs)
        configure(**kwargs)
        structlog.configure(cache_logger_on_first_use=False)

    monkeypatch.setattr(funcweb_logging, "configure_logging", recording_configure)
    yield calls
    structlog.reset_defaults()
