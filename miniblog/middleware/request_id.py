"""
Mini-Blog Backend — Request ID Middleware
===========================================

What:  Assigns a correlation id to every request and echoes it back in the
       X-Request-ID response header.
How:   A client-supplied X-Request-ID is reused when it looks sane (short,
       URL-safe characters); otherwise a fresh short id is generated. The id is
       stored in a ContextVar for loggers and in request.state for handlers,
       including the error handlers that put it in the error envelope.
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Coroutine-local: concurrent requests on one event loop each see their own id.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

_CLIENT_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tags each request/response pair with a correlation id."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        supplied = request.headers.get(REQUEST_ID_HEADER, "")
        rid = supplied if _CLIENT_ID_RE.match(supplied) else new_request_id()

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
