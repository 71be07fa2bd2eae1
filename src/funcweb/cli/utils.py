"""
CLI helpers: consoles and unit-module loading.
"""

from __future__ import annotations

import importlib
import os
import sys

import typer
from rich.console import Console

from funcweb.framework.registry import UnitRegistry, get_registry

console = Console()
err_console = Console(stderr=True)


def load_registry(target: str) -> UnitRegistry:
    """Import ``module`` or ``module:attribute`` and return its registry.

    A bare module is imported for its ``@register_unit`` side effects and
    the process-wide registry is returned.
    """
    module_name, _, attribute = target.partition(":")
    if os.getcwd() not in sys.path:
        sys.path.insert(0, os.getcwd())
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        err_console.print(f"[bold red]Error[/bold red]: cannot import '{module_name}': {e}")
        raise typer.Exit(code=1) from e

    if not attribute:
        return get_registry()

    registry = getattr(module, attribute, None)
    if not isinstance(registry, UnitRegistry):
        err_console.print(
            f"[bold red]Error[/bold red]: '{target}' is not a UnitRegistry"
        )
        raise typer.Exit(code=1)
    return registry
