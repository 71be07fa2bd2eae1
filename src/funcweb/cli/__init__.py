"""
CLI layer for funcweb.

Entry point::

    funcweb --help
    funcweb routes myapp.units
    funcweb serve myapp.units:registry --path /api
"""

from funcweb.cli.app import app

__all__ = ["app"]
