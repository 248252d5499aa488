"""
Mini-Blog Backend — Access Log Middleware
===========================================

What:  One log line per HTTP request on the `miniblog.access` logger.
How:   Measures wall time around the downstream app and logs method, path,
       status, duration, request id and client IP. The level follows the
       status class: 5xx ERROR, 4xx WARNING, everything else INFO.

Not logged: request bodies (passwords), Authorization headers, tokens.
Health probes are skipped; they arrive every few seconds and say nothing.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from miniblog.middleware.request_id import request_id_var

logger = logging.getLogger("miniblog.access")


def client_ip(request: Request) -> str:
    # request.client is None under some test transports
    return request.client.host if request.client else "unknown"


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Writes the access log line once the response status is known."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path.endswith("/health"):
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        rid = request_id_var.get("")
        ip = client_ip(request)
        status = response.status_code
        logger.log(
            level_for_status(status),
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": ip,
            },
        )
        return response
