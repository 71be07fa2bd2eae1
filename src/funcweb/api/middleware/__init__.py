"""HTTP middleware and exception handlers for the funcweb app.

Manifesto:
    Request correlation, timing and error rendering apply to every unit
    route the same way, so none of it lives in the dispatch path.

Tags:
    funcweb, api, middleware, errors

Doc-Types:
    api-reference
"""

from funcweb.api.middleware.errors import install_exception_handlers
from funcweb.api.middleware.request_id import RequestIDMiddleware
from funcweb.api.middleware.timing import TimingMiddleware

__all__ = ["RequestIDMiddleware", "TimingMiddleware", "install_exception_handlers"]
