"""
funcweb - expose registered suppliers, functions and consumers over HTTP.

Each registered unit is bound to ``<prefix>/<name>``; request bodies are
JSON arrays decoded into a :class:`~funcweb.core.streams.Stream` of the
unit's input type, and responses stream back as JSON arrays.

    from funcweb import create_app, register_unit

    @register_unit("uppercase")
    def uppercase(value: str) -> str:
        return value.upper()

    app = create_app()
"""

__version__ = "0.1.0"

from funcweb.core.streams import Stream  # noqa: E402
from funcweb.framework.registry import get_registry, register_unit  # noqa: E402
from funcweb.framework.units import Consumer, Function, Supplier  # noqa: E402


def create_app(*args, **kwargs):
    """Build the FastAPI application (see :func:`funcweb.api.app.create_app`)."""
    from funcweb.api.app import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "Stream",
    "Supplier",
    "Function",
    "Consumer",
    "create_app",
    "get_registry",
    "register_unit",
]
