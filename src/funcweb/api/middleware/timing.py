"""Timing middleware: ``X-Process-Time-Ms`` on every response.

For streamed unit output the header measures time to the first chunk,
which includes the unit's first element.
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from funcweb.core.logging import get_logger

logger = get_logger(__name__)

PROCESS_TIME_HEADER = "X-Process-Time-Ms"


class TimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
        response.headers[PROCESS_TIME_HEADER] = str(elapsed_ms)
        logger.debug(
            "request_handled",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            elapsed_ms=elapsed_ms,
        )
        return response
