"""
funcweb HTTP layer: FastAPI app factory, route mapping and dispatch.

Usage::

    from funcweb.api import create_app

    app = create_app()
    # uvicorn funcweb.api:create_app --factory
"""

from funcweb.api.app import create_app

__all__ = ["create_app"]
